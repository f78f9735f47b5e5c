"""Configuration helpers for the draft pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict


def _env_or_default(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    return int(_env_or_default(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(_env_or_default(name, str(default)))


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return Path(value.strip())


@dataclass(slots=True)
class EmbeddingConfig:
    semantic_model_name: str = field(default_factory=lambda: _env_or_default("SEMANTIC_MODEL_NAME", "all-MiniLM-L6-v2"))
    style_model_name: str = field(default_factory=lambda: _env_or_default("STYLE_MODEL_NAME", "AnnaWegmann/Style-Embedding"))
    batch_size: int = field(default_factory=lambda: _env_int("EMBEDDING_BATCH_SIZE", 32))
    cache_path: Path | None = field(default_factory=lambda: _env_path("EMBEDDING_CACHE_PATH"))


@dataclass(slots=True)
class RetrievalConfig:
    """Weights and limits for example retrieval."""

    semantic_weight: float = field(default_factory=lambda: _env_float("RETRIEVAL_SEMANTIC_WEIGHT", 0.4))
    style_weight: float = field(default_factory=lambda: _env_float("RETRIEVAL_STYLE_WEIGHT", 0.6))
    similarity_threshold: float = field(default_factory=lambda: _env_float("RETRIEVAL_THRESHOLD", 0.3))
    candidate_limit: int = field(default_factory=lambda: _env_int("RETRIEVAL_CANDIDATE_LIMIT", 500))
    example_count: int = field(default_factory=lambda: _env_int("EXAMPLE_COUNT", 25))
    direct_share: float = 0.4
    use_temporal_weighting: bool = field(default_factory=lambda: _env_bool("RETRIEVAL_TEMPORAL_WEIGHTING", True))


@dataclass(slots=True)
class PatternConfig:
    """Knobs for writing-pattern mining."""

    batch_size: int = field(default_factory=lambda: _env_int("PATTERN_BATCH_SIZE", 50))
    confidence_floor: float = 0.7
    max_negative_patterns: int = 10
    max_unique_expressions: int = 15
    short_sentence_max: int = 10
    long_sentence_min: int = 25
    trim_fraction: float = 0.05
    corpus_limit: int = field(default_factory=lambda: _env_int("PATTERN_CORPUS_LIMIT", 1000))
    lock_wait_seconds: float = field(default_factory=lambda: _env_float("PATTERN_LOCK_WAIT_SECONDS", 2.0))
    lock_ttl_seconds: float = field(default_factory=lambda: _env_float("PATTERN_LOCK_TTL_SECONDS", 600.0))
    profile_dir: Path = field(default_factory=lambda: Path(os.getenv("PATTERN_PROFILE_DIR", "data/profiles")))


# Context windows (tokens) for the Gemini models we target.
DEFAULT_CONTEXT_WINDOWS: Dict[str, int] = {
    "models/gemini-2.5-flash": 1_048_576,
    "models/gemini-2.5-pro": 1_048_576,
    "models/gemini-2.0-flash": 1_048_576,
    "models/gemini-1.5-flash": 1_048_576,
}


@dataclass(slots=True)
class LLMConfig:
    """Model selection and call limits."""

    model_name: str = field(default_factory=lambda: _env_or_default("GEMINI_MODEL_NAME", "models/gemini-2.5-flash"))
    api_key: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))
    timeout_seconds: float = field(default_factory=lambda: _env_float("LLM_TIMEOUT_SECONDS", 30.0))
    request_deadline_seconds: float = field(default_factory=lambda: _env_float("LLM_REQUEST_DEADLINE_SECONDS", 120.0))
    max_retries: int = field(default_factory=lambda: _env_int("LLM_MAX_RETRIES", 1))
    retry_backoff_seconds: float = 1.0
    temperature: float = 0.5
    max_output_tokens: int = 2048
    chars_per_token: float = 3.5
    default_context_window: int = 32_768
    context_windows: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_CONTEXT_WINDOWS))

    def input_budget_tokens(self, model_name: str | None = None) -> int:
        window = self.context_windows.get(model_name or self.model_name, self.default_context_window)
        return max(window - self.max_output_tokens, 1)


@dataclass(slots=True)
class PipelineConfig:
    """Top-level runtime configuration."""

    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    patterns: PatternConfig = field(default_factory=PatternConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    embeddings: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    redis_url: str = field(default_factory=lambda: _env_or_default("REDIS_URL", "redis://localhost:6379/0"))
    use_redis_leases: bool = field(default_factory=lambda: _env_bool("USE_REDIS_LEASES", False))
    cluster_count: int = 3
