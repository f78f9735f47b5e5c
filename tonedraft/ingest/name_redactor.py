"""Personal-name and contact redaction for text sent to the model in bulk."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?(?:\(\d{2,4}\)|\d{3,5})[-.\s]?\d{3}[-.\s]?\d{3,4}")
URL_PATTERN = re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE)
GREETING_NAME_PATTERN = re.compile(
    r"^(\s*(?i:hi|hello|hey|dear|good morning|good afternoon|good evening)[ \t]+)"
    r"([A-Z][\w'-]*(?:[ \t]+[A-Z][\w'-]*)?)",
    re.MULTILINE,
)
SIGNOFF_PATTERN = re.compile(
    r"^\s*(?:thanks|thank you|best|regards|cheers|sincerely|warmly|best regards|kind regards)\b.*$",
    re.IGNORECASE,
)
SIGNATURE_NAME_PATTERN = re.compile(r"^\s*[A-Z][\w'-]*(?:\s+[A-Z][\w'-]*){0,2}\s*$")

LOGGER = logging.getLogger(__name__)

NAME_MASK = "[NAME]"


@dataclass(slots=True)
class RedactionSpan:
    """A single span to mask."""

    text: str
    start: int
    end: int
    label: str


class NameRedactor:
    """Masks names in greetings and sign-offs, known user names, and contact details."""

    def __init__(self, known_names: Iterable[str] = ()) -> None:
        names = sorted({name.strip() for name in known_names if name and len(name.strip()) > 1}, key=len, reverse=True)
        self._known_pattern = (
            re.compile(r"\b(?:" + "|".join(re.escape(name) for name in names) + r")\b", re.IGNORECASE)
            if names
            else None
        )

    def detect(self, text: str) -> List[RedactionSpan]:
        spans: List[RedactionSpan] = []
        for pattern, label in ((EMAIL_PATTERN, "EMAIL"), (URL_PATTERN, "URL"), (PHONE_PATTERN, "PHONE")):
            for match in pattern.finditer(text):
                spans.append(RedactionSpan(text=match.group(), start=match.start(), end=match.end(), label=label))
        for match in GREETING_NAME_PATTERN.finditer(text):
            spans.append(RedactionSpan(text=match.group(2), start=match.start(2), end=match.end(2), label="NAME"))
        if self._known_pattern is not None:
            for match in self._known_pattern.finditer(text):
                spans.append(RedactionSpan(text=match.group(), start=match.start(), end=match.end(), label="NAME"))
        spans.extend(self._signature_names(text))
        return sorted(spans, key=lambda item: (item.start, -item.end))

    def redact(self, text: str) -> str:
        spans = self.detect(text)
        if not spans:
            return text
        pieces = []
        cursor = 0
        for span in spans:
            if span.start < cursor:
                continue
            pieces.append(text[cursor : span.start])
            pieces.append(NAME_MASK if span.label == "NAME" else f"[{span.label}]")
            cursor = span.end
        pieces.append(text[cursor:])
        LOGGER.debug("Redacted %s spans", len(spans))
        return "".join(pieces)

    def redact_all(self, texts: Sequence[str]) -> List[str]:
        return [self.redact(text) for text in texts]

    @staticmethod
    def _signature_names(text: str) -> List[RedactionSpan]:
        """A short capitalised line directly under a sign-off is treated as a name."""
        spans: List[RedactionSpan] = []
        offset = 0
        previous_was_signoff = False
        for line in text.splitlines(keepends=True):
            stripped = line.rstrip("\r\n")
            if previous_was_signoff and SIGNATURE_NAME_PATTERN.match(stripped):
                start = offset + (len(stripped) - len(stripped.lstrip()))
                spans.append(RedactionSpan(text=stripped.strip(), start=start, end=start + len(stripped.strip()), label="NAME"))
            if stripped.strip():
                previous_was_signoff = bool(SIGNOFF_PATTERN.match(stripped))
            offset += len(line)
        return spans
