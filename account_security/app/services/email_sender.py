from abc import ABC, abstractmethod


class EmailSender(ABC):
    """Outbound email collaborator"""

    @abstractmethod
    async def send_password_reset(self, email: str, reset_url: str) -> None:
        """Deliver a password reset link. May raise; callers log and carry on."""
        pass

    @abstractmethod
    async def send_email_verification(self, email: str, verify_url: str) -> None:
        """Deliver an email verification link. May raise; callers log and carry on."""
        pass
