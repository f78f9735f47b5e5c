"""Error taxonomy shared across the draft pipeline."""

from __future__ import annotations

from enum import Enum


class ToneDraftError(Exception):
    """Base class for pipeline failures that carry a stable machine-readable code."""

    code = "UNKNOWN"


class ParseError(ToneDraftError):
    """Raised when a raw message is structurally invalid MIME."""

    code = "PARSE_ERROR"


class AccountNotFoundError(ToneDraftError):
    code = "ACCOUNT_NOT_FOUND"


class ProviderErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid-credentials"
    RATE_LIMIT = "rate-limit"
    MODEL_NOT_FOUND = "model-not-found"
    CONNECTION_FAILED = "connection-failed"
    UNKNOWN = "unknown"


_RETRYABLE_KINDS = {ProviderErrorKind.RATE_LIMIT, ProviderErrorKind.CONNECTION_FAILED}


class ProviderError(ToneDraftError):
    """Failure reported by a model provider, classified by kind."""

    def __init__(self, kind: ProviderErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def code(self) -> str:  # type: ignore[override]
        return "PROVIDER_" + self.kind.name

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE_KINDS


class LLMTimeoutError(ToneDraftError, TimeoutError):
    """A model call (or the whole call chain's deadline) ran out of time."""

    code = "LLM_TIMEOUT"


class JSONContractError(ToneDraftError):
    """Model output was not valid JSON or lacked required fields."""

    code = "JSON_CONTRACT"

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class ClusteringError(ToneDraftError):
    code = "CLUSTERING_ERROR"


class LockContention(Exception):
    """Signal that the same unit of work is already running elsewhere; try again later."""

    def __init__(self, key: int) -> None:
        super().__init__(f"lease {key} is held by another worker")
        self.key = key
