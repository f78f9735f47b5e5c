"""Dataclasses for drafts and the pipeline's result envelope."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Tuple

from ..store import RelationshipInfo
from .actions import RecommendedAction


@dataclass(frozen=True, slots=True)
class SpamVerdict:
    is_spam: bool
    indicators: Tuple[str, ...] = ()
    sender_response_count: int = 0
    whitelisted: bool = False

    def summary(self) -> str:
        if self.whitelisted:
            return f"trusted sender ({self.sender_response_count} prior replies)"
        if self.is_spam:
            return "likely spam: " + "; ".join(self.indicators)
        return "not spam"


class DraftState(str, Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    SPAM_CHECKED = "spam-checked"
    ACTION_CLASSIFIED = "action-classified"
    RESPONSE_GENERATED = "response-generated"
    SILENT_DRAFT = "silent-draft"
    REPLY_DRAFT = "reply-draft"


@dataclass(frozen=True, slots=True)
class Draft:
    """Final draft for one incoming email; built once and never modified."""

    to: Tuple[str, ...]
    cc: Tuple[str, ...]
    subject: str
    body_text: str
    body_html: str | None
    in_reply_to: str
    references: Tuple[str, ...]
    recommended_action: RecommendedAction
    key_considerations: Tuple[str, ...]
    relationship: RelationshipInfo
    spam_verdict: SpamVerdict
    example_count: int
    generated_at: datetime
    state: DraftState
    from_address: str = ""
    original_message_id: str = ""

    @property
    def is_silent(self) -> bool:
        return self.state is DraftState.SILENT_DRAFT


class ErrorCode(str, Enum):
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN = "UNKNOWN"


@dataclass(slots=True)
class ProcessingResult:
    success: bool
    draft: Draft | None = None
    error: str = ""
    error_code: ErrorCode | None = None
    detail_code: str = ""

    def to_dict(self) -> Dict:
        if self.success:
            return {"success": True, "draft": self.draft}
        return {"success": False, "error": self.error, "errorCode": self.error_code.value if self.error_code else None}
