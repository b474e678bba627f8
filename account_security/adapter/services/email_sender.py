import logging

from account_security.app.services.email_sender import EmailSender
from account_security.app.services.security_errors import mask_email

logger = logging.getLogger(__name__)


class LoggingEmailSender(EmailSender):
    """
    Stand-in for a real provider: logs that an email would be sent.

    Links carry the raw token, so only their path is logged.
    """

    async def send_password_reset(self, email: str, reset_url: str) -> None:
        logger.info(
            f"Password reset email queued for {mask_email(email)} "
            f"(link to {reset_url.split('?', 1)[0]})"
        )

    async def send_email_verification(self, email: str, verify_url: str) -> None:
        logger.info(
            f"Verification email queued for {mask_email(email)} "
            f"(link to {verify_url.split('?', 1)[0]})"
        )
