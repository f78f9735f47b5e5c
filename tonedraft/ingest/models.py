"""Dataclasses describing a parsed incoming message."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass(frozen=True, slots=True)
class EmailAddress:
    address: str
    name: str = ""

    def display(self) -> str:
        return f"{self.name} <{self.address}>" if self.name else self.address


@dataclass(frozen=True, slots=True)
class NormalizedEmail:
    """Structured view of one raw message.

    ``raw`` is the message exactly as received and is kept for storage/audit only.
    ``safe_body`` is the attachment-free text used for every model call.
    """

    message_id: str
    from_addresses: List[EmailAddress]
    to: List[EmailAddress]
    cc: List[EmailAddress]
    reply_to: List[EmailAddress]
    subject: str
    date: datetime
    text_body: str
    html_body: str | None
    safe_body: str
    raw: str
    in_reply_to: str = ""
    references: List[str] = field(default_factory=list)
    attachment_names: List[str] = field(default_factory=list)

    @property
    def sender(self) -> EmailAddress | None:
        return self.from_addresses[0] if self.from_addresses else None

    @property
    def sender_address(self) -> str:
        return self.sender.address if self.sender else ""

    @property
    def reply_to_address(self) -> str:
        return self.reply_to[0].address if self.reply_to else ""

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachment_names)
