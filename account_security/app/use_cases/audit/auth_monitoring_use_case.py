"""
Auth Monitoring Use Case

Security metrics over the audit trail, threshold alerts and the suspicious
activity report. Alerts are written to the ``account_security.security``
logger, which is where log shipping picks them up.
"""

import logging
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel

from account_security.app.repositories.audit_event_repository import EmailLockouts, IpActivity
from account_security.app.services.security_errors import mask_email
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType

security_logger = logging.getLogger("account_security.security")

# Report cut-offs
FAILED_LOGINS_PER_IP = 10
LOCKOUTS_PER_EMAIL = 2
EMAILS_PER_IP = 5


class AlertSeverity(str, Enum):
    info = "info"
    warning = "warning"
    critical = "critical"


class AlertThresholds(BaseModel):
    failed_logins_per_hour: int = 20
    account_lockouts_per_day: int = 50
    suspicious_activities_per_day: int = 10


class Alert(BaseModel):
    severity: AlertSeverity
    message: str


class AuthMetrics(BaseModel):
    """Event counts over the last 24 hours"""

    failed_logins: int
    account_lockouts: int
    registrations: int
    password_resets: int
    suspicious_activities: int


class SuspiciousActivityReport(BaseModel):
    report_time: datetime
    hours: int
    suspicious_ips: List[IpActivity]
    frequent_lockouts: List[EmailLockouts]
    email_spamming: List[IpActivity]


class AuthMonitoringUseCase:
    """
    Business Rules:
    - Failed logins alert on the hourly average over 24h, rounded up (warning)
    - Lockouts over 24h alert above their daily threshold (warning)
    - Suspicious activity over 24h alerts above its daily threshold (critical)
    - A critical alert is followed by a suspicious activity report for the last hour
    """

    def __init__(
        self,
        uow: UnitOfWork,
        thresholds: Optional[AlertThresholds] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.thresholds = thresholds or AlertThresholds()
        self.clock = clock

    async def get_metrics(self) -> AuthMetrics:
        since = self.clock() - timedelta(hours=24)

        async with self.uow:
            count = self.uow.audit_events.count_by_type_since
            return AuthMetrics(
                failed_logins=await count(AuditEventType.LOGIN_FAILED, since),
                account_lockouts=await count(AuditEventType.ACCOUNT_LOCKED, since),
                registrations=await count(AuditEventType.REGISTER_SUCCESS, since),
                password_resets=await count(AuditEventType.PASSWORD_RESET_SUCCESS, since),
                suspicious_activities=await count(AuditEventType.SUSPICIOUS_ACTIVITY, since),
            )

    async def check_alerts(self) -> List[Alert]:
        metrics = await self.get_metrics()
        thresholds = self.thresholds
        alerts: List[Alert] = []

        failed_per_hour = math.ceil(metrics.failed_logins / 24)
        if failed_per_hour > thresholds.failed_logins_per_hour:
            alerts.append(
                Alert(
                    severity=AlertSeverity.warning,
                    message=(
                        f"High failed logins: {failed_per_hour}/hour "
                        f"(threshold: {thresholds.failed_logins_per_hour})"
                    ),
                )
            )

        if metrics.account_lockouts > thresholds.account_lockouts_per_day:
            alerts.append(
                Alert(
                    severity=AlertSeverity.warning,
                    message=(
                        f"Excessive lockouts: {metrics.account_lockouts}/day "
                        f"(threshold: {thresholds.account_lockouts_per_day})"
                    ),
                )
            )

        if metrics.suspicious_activities > thresholds.suspicious_activities_per_day:
            alerts.append(
                Alert(
                    severity=AlertSeverity.critical,
                    message=(
                        f"Suspicious activity: {metrics.suspicious_activities}/day "
                        f"(threshold: {thresholds.suspicious_activities_per_day})"
                    ),
                )
            )

        return alerts

    async def get_suspicious_activity_report(self, hours: int = 24) -> SuspiciousActivityReport:
        """
        Addresses with more than 10 failed logins, emails locked out more than
        twice, and addresses trying more than 5 different emails across failed
        logins and registrations.
        """
        now = self.clock()
        since = now - timedelta(hours=hours)

        async with self.uow:
            events = self.uow.audit_events
            suspicious_ips = await events.activity_by_ip_since(
                [AuditEventType.LOGIN_FAILED], since, min_attempts=FAILED_LOGINS_PER_IP, limit=20
            )
            frequent_lockouts = await events.lockouts_by_email_since(
                since, min_lockouts=LOCKOUTS_PER_EMAIL, limit=10
            )
            email_spamming = await events.activity_by_ip_since(
                [AuditEventType.REGISTER_FAILED, AuditEventType.LOGIN_FAILED],
                since,
                min_unique_emails=EMAILS_PER_IP,
                limit=10,
            )

        return SuspiciousActivityReport(
            report_time=now,
            hours=hours,
            suspicious_ips=suspicious_ips,
            frequent_lockouts=frequent_lockouts,
            email_spamming=email_spamming,
        )

    async def run_checks(self) -> List[Alert]:
        """One monitoring pass: log every alert, then a report if any was critical"""
        alerts = await self.check_alerts()

        for alert in alerts:
            level = logging.CRITICAL if alert.severity == AlertSeverity.critical else logging.WARNING
            security_logger.log(level, f"[{alert.severity.value.upper()}] {alert.message}")

        if any(alert.severity == AlertSeverity.critical for alert in alerts):
            report = await self.get_suspicious_activity_report(hours=1)
            masked = report.model_copy(
                update={
                    "frequent_lockouts": [
                        entry.model_copy(update={"email": mask_email(entry.email)})
                        for entry in report.frequent_lockouts
                    ]
                }
            )
            security_logger.warning(f"Suspicious activity report: {masked.model_dump_json()}")

        return alerts
