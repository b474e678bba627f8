from abc import ABC, abstractmethod

from account_security.domain.entities import AuditEvent


class AuditSink(ABC):
    """Append-only writer for security audit events"""

    @abstractmethod
    async def emit(self, event: AuditEvent) -> None:
        """
        Persist one event.

        Implementations must not raise: a broken audit backend is logged and
        never turns into a failed login or reset.
        """
        pass
