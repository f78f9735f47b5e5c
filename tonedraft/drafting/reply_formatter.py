"""Recipient resolution and quoted plain-text/HTML reply bodies."""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Sequence, Tuple

from ..ingest.models import EmailAddress, NormalizedEmail
from .actions import DraftKind

REPLY_PREFIX = "Re: "


@dataclass(frozen=True, slots=True)
class Recipients:
    to: Tuple[str, ...]
    cc: Tuple[str, ...]


def _unique(addresses: Iterable[EmailAddress], excluded: set[str]) -> List[EmailAddress]:
    seen = set(excluded)
    ordered: List[EmailAddress] = []
    for entry in addresses:
        key = entry.address.lower()
        if key in seen:
            continue
        seen.add(key)
        ordered.append(entry)
    return ordered


def resolve_recipients(original: NormalizedEmail, kind: DraftKind, user_addresses: Sequence[str]) -> Recipients:
    """Reply goes to the sender only; reply-all adds every To/Cc address except the user's."""
    if kind is DraftKind.SILENT:
        return Recipients(to=(), cc=())
    user = {address.lower() for address in user_addresses if address}
    sender = original.from_addresses[:1]
    if kind is DraftKind.REPLY:
        to = _unique(sender, user)
        cc: List[EmailAddress] = []
    else:
        to = _unique([*sender, *original.to], user)
        cc = _unique(original.cc, user | {entry.address.lower() for entry in to})
    return Recipients(to=tuple(entry.display() for entry in to), cc=tuple(entry.display() for entry in cc))


def reply_subject(subject: str) -> str:
    subject = subject.strip()
    if subject.lower().startswith("re:"):
        return subject
    return f"{REPLY_PREFIX}{subject}"


def format_quote_date(value: datetime) -> str:
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value:%B} {value.day}, {value.year} at {hour}:{value:%M:%S} {meridiem}"


def attribution_line(original: NormalizedEmail) -> str:
    sender = original.sender.display() if original.sender else "unknown sender"
    return f"On {format_quote_date(original.date)}, {sender} wrote:"


def compose_body(reply: str, typed_name: str = "", signature: str = "") -> str:
    parts = [reply.rstrip()]
    if typed_name:
        parts.append(typed_name.strip())
    if signature:
        parts.append(signature.rstrip())
    return "\n".join(part for part in parts if part)


def build_text_reply(body: str, original: NormalizedEmail) -> str:
    quoted = "\n".join(f"> {line}" if line else ">" for line in original.safe_body.splitlines())
    return f"{body}\n\n{attribution_line(original)}\n\n{quoted}\n"


def build_html_reply(body: str, original: NormalizedEmail) -> str | None:
    """HTML version, only when the original carried HTML."""
    if not original.html_body:
        return None
    reply_html = "<br>\n".join(html.escape(line) for line in body.splitlines())
    return (
        f"<div>{reply_html}</div>\n"
        f"<div class=\"gmail_quote\"><div>{html.escape(attribution_line(original))}</div>\n"
        f"<blockquote style=\"margin:0 0 0 .8ex;border-left:1px #ccc solid;padding-left:1ex\">\n"
        f"{original.html_body}\n"
        f"</blockquote></div>"
    )
