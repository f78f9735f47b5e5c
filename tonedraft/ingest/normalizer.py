"""MIME parsing of raw incoming messages into NormalizedEmail objects."""

from __future__ import annotations

import email
import hashlib
import logging
from datetime import datetime, timezone
from email import errors as email_errors
from email import policy
from email.message import EmailMessage
from email.utils import getaddresses, parsedate_to_datetime
from typing import List, Tuple

from ..errors import ParseError
from .cleaning import html_to_text, normalize_newlines
from .models import EmailAddress, NormalizedEmail

LOGGER = logging.getLogger(__name__)

EMPTY_BODY_PLACEHOLDER = "(No content)"

STRUCTURAL_DEFECTS = (
    email_errors.NoBoundaryInMultipartDefect,
    email_errors.StartBoundaryNotFoundDefect,
    email_errors.MultipartInvariantViolationDefect,
)


def normalize_message_id(value: str | None) -> str:
    if not value:
        return ""
    return value.strip().strip("<>").strip()


class EmailNormalizer:
    """Parses raw RFC 5322 text; only structurally broken MIME is fatal."""

    def parse(self, raw: str) -> NormalizedEmail:
        if not raw or not raw.strip():
            raise ParseError("Empty message")

        message = email.message_from_string(raw, policy=policy.default)
        self._check_structure(message)

        text_body, html_body = self._extract_bodies(message)
        safe_body = text_body or EMPTY_BODY_PLACEHOLDER

        references = [normalize_message_id(ref) for ref in str(message.get("References", "")).split()]
        normalized = NormalizedEmail(
            message_id=self._message_id(message, raw),
            from_addresses=self._addresses(message, "From"),
            to=self._addresses(message, "To"),
            cc=self._addresses(message, "Cc"),
            reply_to=self._addresses(message, "Reply-To"),
            subject=str(message.get("Subject", "") or "").strip(),
            date=self._parse_date(message.get("Date")),
            text_body=text_body,
            html_body=html_body,
            safe_body=safe_body,
            raw=raw,
            in_reply_to=normalize_message_id(message.get("In-Reply-To")),
            references=[ref for ref in references if ref],
            attachment_names=self._attachment_names(message),
        )
        LOGGER.debug(
            "Parsed message %s (%s attachments stripped from safe body)",
            normalized.message_id,
            len(normalized.attachment_names),
        )
        return normalized

    @staticmethod
    def _check_structure(message: EmailMessage) -> None:
        if not message.keys():
            raise ParseError("Message has no header block")
        for part in message.walk():
            for defect in part.defects:
                if isinstance(defect, STRUCTURAL_DEFECTS):
                    raise ParseError(f"Invalid MIME structure: {type(defect).__name__}")

    def _extract_bodies(self, message: EmailMessage) -> Tuple[str, str | None]:
        plain_part = message.get_body(preferencelist=("plain",))
        html_part = message.get_body(preferencelist=("html",))
        plain = normalize_newlines(self._part_text(plain_part)) if plain_part is not None else ""
        html = self._part_text(html_part) if html_part is not None else ""
        if not plain and html:
            plain = html_to_text(html)
        return plain, html or None

    @staticmethod
    def _part_text(part: EmailMessage) -> str:
        try:
            content = part.get_content()
        except (LookupError, UnicodeDecodeError):
            payload = part.get_payload(decode=True) or b""
            content = payload.decode("utf-8", errors="replace")
        return content if isinstance(content, str) else ""

    @staticmethod
    def _attachment_names(message: EmailMessage) -> List[str]:
        names: List[str] = []
        for part in message.walk():
            if part.is_multipart():
                continue
            if part.get_content_disposition() == "attachment" or (
                part.get_filename() and part.get_content_maintype() != "text"
            ):
                names.append(part.get_filename() or "attachment")
        return names

    @staticmethod
    def _addresses(message: EmailMessage, header: str) -> List[EmailAddress]:
        values = [str(value) for value in message.get_all(header, [])]
        parsed: List[EmailAddress] = []
        for name, address in getaddresses(values):
            if address and "@" in address:
                parsed.append(EmailAddress(address=address.strip().lower(), name=name.strip()))
        return parsed

    @staticmethod
    def _message_id(message: EmailMessage, raw: str) -> str:
        message_id = normalize_message_id(message.get("Message-ID"))
        if message_id:
            return message_id
        digest = hashlib.sha256(raw.encode("utf-8", errors="replace")).hexdigest()[:24]
        LOGGER.debug("Message-ID missing; generated %s", digest)
        return f"generated-{digest}@tonedraft.local"

    @staticmethod
    def _parse_date(value: object) -> datetime:
        if value:
            try:
                parsed = parsedate_to_datetime(str(value))
            except (TypeError, ValueError, IndexError):
                parsed = None
            if parsed is not None:
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc)
