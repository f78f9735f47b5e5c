"""Two-phase example retrieval: candidate fetch, then in-memory dual-axis scoring."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Sequence

import numpy as np

from ..config import RetrievalConfig
from ..store import CandidateQuery, EmailStore
from .similarity import SimilarityIndex

LOGGER = logging.getLogger(__name__)

DAYS_PER_MONTH = 30

# (max age in months, factor); anything older gets the last factor.
TEMPORAL_BUCKETS = ((3, 1.0), (6, 0.85), (12, 0.7))
OLDEST_FACTOR = 0.5


def temporal_weight(age_days: float) -> float:
    """Age-bucket decay factor; boundaries are inclusive on the newer side."""
    months = max(age_days, 0) / DAYS_PER_MONTH
    for max_months, factor in TEMPORAL_BUCKETS:
        if months <= max_months:
            return factor
    return OLDEST_FACTOR


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ExampleScores:
    semantic: float
    style: float
    combined: float
    temporal: float


@dataclass(slots=True)
class ExampleMetadata:
    recipient: str
    relationship: str
    sent_date: datetime
    subject: str = ""
    is_direct_correspondence: bool = False


@dataclass(slots=True)
class Example:
    email_id: str
    text: str
    scores: ExampleScores
    metadata: ExampleMetadata


@dataclass(slots=True)
class RetrievalStats:
    candidate_count: int = 0
    returned_count: int = 0
    avg_semantic_score: float = 0.0
    avg_style_score: float = 0.0
    avg_combined_score: float = 0.0
    elapsed_ms: float = 0.0


@dataclass(slots=True)
class RetrievalResult:
    examples: List[Example] = field(default_factory=list)
    stats: RetrievalStats = field(default_factory=RetrievalStats)


class VectorRetrievalService:
    """Scores a bounded candidate set against the query's semantic and style vectors."""

    def __init__(
        self,
        store: EmailStore,
        config: RetrievalConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.config = config or RetrievalConfig()
        self.clock = clock

    async def search(
        self,
        user_id: str,
        semantic_vector: np.ndarray,
        style_vector: np.ndarray,
        limit: int,
        threshold: float | None = None,
        relationship: str | None = None,
        recipient: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        exclude_ids: Sequence[str] = (),
        direct_correspondence: bool = False,
    ) -> RetrievalResult:
        started = time.perf_counter()
        threshold = self.config.similarity_threshold if threshold is None else threshold
        excluded = set(exclude_ids)

        query = CandidateQuery(
            user_id=user_id,
            limit=self.config.candidate_limit,
            relationship=relationship,
            recipient=recipient,
            date_from=date_from,
            date_to=date_to,
            exclude_ids=list(excluded),
        )
        fetched = await self.store.fetch_candidates(query)
        candidates = [item for item in fetched if item.has_vectors and item.email_id not in excluded]
        if len(candidates) != len(fetched):
            LOGGER.debug("Dropped %s ineligible candidates", len(fetched) - len(candidates))

        index = SimilarityIndex(
            ids=[item.email_id for item in candidates],
            semantic_vectors=[item.semantic_vector for item in candidates],
            style_vectors=[item.style_vector for item in candidates],
        )
        axis = index.score(semantic_vector, style_vector)
        now = self.clock()

        examples: List[Example] = []
        for position, stored in enumerate(candidates):
            semantic = float(axis.semantic[position])
            style = float(axis.style[position])
            combined = self.config.semantic_weight * semantic + self.config.style_weight * style
            if combined < threshold:
                continue
            factor = 1.0
            if self.config.use_temporal_weighting:
                age_days = (now - stored.sent_date).total_seconds() / 86400
                factor = temporal_weight(age_days)
            examples.append(
                Example(
                    email_id=stored.email_id,
                    text=stored.text,
                    scores=ExampleScores(semantic=semantic, style=style, combined=combined, temporal=combined * factor),
                    metadata=ExampleMetadata(
                        recipient=stored.recipient_address,
                        relationship=stored.relationship,
                        sent_date=stored.sent_date,
                        subject=stored.subject,
                        is_direct_correspondence=direct_correspondence,
                    ),
                )
            )

        examples.sort(key=lambda example: example.scores.temporal, reverse=True)
        selected = examples[:limit]
        stats = self._stats(len(candidates), selected, started)
        LOGGER.info(
            "Retrieved %s/%s candidates for %s in %.1fms",
            stats.returned_count,
            stats.candidate_count,
            user_id,
            stats.elapsed_ms,
        )
        return RetrievalResult(examples=selected, stats=stats)

    @staticmethod
    def _stats(candidate_count: int, selected: List[Example], started: float) -> RetrievalStats:
        stats = RetrievalStats(candidate_count=candidate_count, returned_count=len(selected))
        if selected:
            stats.avg_semantic_score = float(np.mean([ex.scores.semantic for ex in selected]))
            stats.avg_style_score = float(np.mean([ex.scores.style for ex in selected]))
            stats.avg_combined_score = float(np.mean([ex.scores.combined for ex in selected]))
        stats.elapsed_ms = (time.perf_counter() - started) * 1000
        return stats
