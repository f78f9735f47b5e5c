"""Spam gate, model client and draft orchestration."""

from .actions import DraftKind, RecommendedAction
from .email_models import Draft, ErrorCode, ProcessingResult, SpamVerdict
from .llm_client import Deadline, GeminiProvider, ResilientModelClient
from .orchestrator import DraftOrchestrator
from .spam_gate import SpamGate

__all__ = [
    "Deadline",
    "Draft",
    "DraftKind",
    "DraftOrchestrator",
    "ErrorCode",
    "GeminiProvider",
    "ProcessingResult",
    "RecommendedAction",
    "ResilientModelClient",
    "SpamGate",
    "SpamVerdict",
]
