"""Mail port — abstract interface for delivering email to users.

Core modules depend on this protocol, never on a specific mail transport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str
    user_id: int | None = None
    username: str | None = None


class MailPort(Protocol):
    """Abstract mail interface used by core modules.

    Returns True only when the transport accepted the message.
    """

    async def send_email(self, message: OutgoingEmail) -> bool: ...
