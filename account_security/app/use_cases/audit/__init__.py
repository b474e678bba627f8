"""
Audit Use Cases

All audit-related business logic.
"""

from .get_audit_events_use_case import AuditEventItem, AuditEventsResponse, GetAuditEventsUseCase
from .auth_monitoring_use_case import (
    Alert,
    AlertSeverity,
    AlertThresholds,
    AuthMetrics,
    AuthMonitoringUseCase,
    SuspiciousActivityReport,
)

__all__ = [
    "GetAuditEventsUseCase",
    "AuditEventItem",
    "AuditEventsResponse",
    "AuthMonitoringUseCase",
    "AuthMetrics",
    "Alert",
    "AlertSeverity",
    "AlertThresholds",
    "SuspiciousActivityReport",
]
