"""Closed set of recommended actions and how each one is drafted."""

from __future__ import annotations

from enum import Enum
from typing import Dict


class RecommendedAction(str, Enum):
    REPLY = "reply"
    REPLY_ALL = "reply-all"
    FORWARD = "forward"
    FORWARD_WITH_COMMENT = "forward-with-comment"
    SILENT_FYI_ONLY = "silent-fyi-only"
    SILENT_LARGE_LIST = "silent-large-list"
    SILENT_UNSUBSCRIBE = "silent-unsubscribe"
    SILENT_SPAM = "silent-spam"
    SILENT_TODO = "silent-todo"
    SILENT_AMBIGUOUS = "silent-ambiguous"
    UNKNOWN = "unknown"


class DraftKind(str, Enum):
    REPLY = "reply"
    REPLY_ALL = "reply-all"
    SILENT = "silent"


ACTION_DRAFT_KINDS: Dict[RecommendedAction, DraftKind] = {
    RecommendedAction.REPLY: DraftKind.REPLY,
    RecommendedAction.REPLY_ALL: DraftKind.REPLY_ALL,
    RecommendedAction.FORWARD: DraftKind.REPLY,
    RecommendedAction.FORWARD_WITH_COMMENT: DraftKind.REPLY,
    RecommendedAction.SILENT_FYI_ONLY: DraftKind.SILENT,
    RecommendedAction.SILENT_LARGE_LIST: DraftKind.SILENT,
    RecommendedAction.SILENT_UNSUBSCRIBE: DraftKind.SILENT,
    RecommendedAction.SILENT_SPAM: DraftKind.SILENT,
    RecommendedAction.SILENT_TODO: DraftKind.SILENT,
    RecommendedAction.SILENT_AMBIGUOUS: DraftKind.SILENT,
    RecommendedAction.UNKNOWN: DraftKind.SILENT,
}

ACTION_DESCRIPTIONS: Dict[RecommendedAction, str] = {
    RecommendedAction.REPLY: "respond only to the sender",
    RecommendedAction.REPLY_ALL: "respond to the sender and everyone on To/Cc",
    RecommendedAction.FORWARD: "someone else should handle this; draft a hand-off note",
    RecommendedAction.FORWARD_WITH_COMMENT: "pass along with the user's own commentary",
    RecommendedAction.SILENT_FYI_ONLY: "informational, nothing to answer",
    RecommendedAction.SILENT_LARGE_LIST: "sent to a large list; the user is not expected to reply",
    RecommendedAction.SILENT_UNSUBSCRIBE: "newsletter or marketing the user would unsubscribe from",
    RecommendedAction.SILENT_SPAM: "unsolicited or deceptive",
    RecommendedAction.SILENT_TODO: "needs action from the user but no written reply",
    RecommendedAction.SILENT_AMBIGUOUS: "unclear what is wanted; leave for the user",
    RecommendedAction.UNKNOWN: "cannot be determined",
}

_missing = set(RecommendedAction) - set(ACTION_DRAFT_KINDS)
if _missing:
    raise RuntimeError(f"Recommended actions without a draft kind: {sorted(a.value for a in _missing)}")
_missing = set(RecommendedAction) - set(ACTION_DESCRIPTIONS)
if _missing:
    raise RuntimeError(f"Recommended actions without a description: {sorted(a.value for a in _missing)}")
del _missing


def draft_kind(action: RecommendedAction) -> DraftKind:
    return ACTION_DRAFT_KINDS[action]


def is_silent(action: RecommendedAction) -> bool:
    return ACTION_DRAFT_KINDS[action] is DraftKind.SILENT
