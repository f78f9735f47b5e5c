"""Mines a user's writing habits per relationship, with lease-guarded caching."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, List, Sequence

from pydantic import ValidationError

from ..config import PatternConfig
from ..errors import JSONContractError, LLMTimeoutError, LockContention, ProviderError
from ..ingest.name_redactor import NameRedactor
from ..locks import LeaseService, hold, lease_key
from ..store import AGGREGATE_KEY, EmailStore, ProfileStore
from .aggregation import WeightedBatch, aggregate_batches
from .models import BatchPatternAnalysis, WritingPatterns
from .statistics import compute_statistics

if TYPE_CHECKING:
    from ..drafting.llm_client import ResilientModelClient

LOGGER = logging.getLogger(__name__)

PATTERN_ANALYSIS_PROMPT = """You are studying how one person writes emails to their {relationship} contacts.
Names have been replaced with [NAME].

Identify:
- negativePatterns: things this person consistently avoids (description, confidence 0-1, optional examples, optional context)
- responsePatterns: immediate (0-1 share of quick, short replies), contemplative (0-1 share of considered, longer replies),
  questionHandling (one short phrase describing how they answer questions)
- uniqueExpressions: distinctive phrases they reuse (phrase, context, occurrenceRate 0-1 across these emails)

Return only a JSON object:
{{"negativePatterns": [{{"description": "...", "confidence": 0.9}}],
  "responsePatterns": {{"immediate": 0.5, "contemplative": 0.5, "questionHandling": "..."}},
  "uniqueExpressions": [{{"phrase": "...", "context": "...", "occurrenceRate": 0.2}}]}}

Emails ({email_count}):
{emails}
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WritingPatternAnalyzer:
    """Statistical plus model-assisted pattern mining, cached per (user, relationship)."""

    def __init__(
        self,
        client: "ResilientModelClient",
        profiles: ProfileStore,
        leases: LeaseService,
        emails: EmailStore,
        config: PatternConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.profiles = profiles
        self.leases = leases
        self.emails = emails
        self.config = config or PatternConfig()
        self.clock = clock

    def load_patterns(self, user_id: str, relationship: str | None = None) -> WritingPatterns | None:
        payload = self.profiles.load_patterns(user_id, relationship or AGGREGATE_KEY)
        if not payload:
            return None
        try:
            return WritingPatterns.model_validate(payload)
        except ValidationError as exc:
            LOGGER.warning("Ignoring unreadable cached patterns for %s/%s: %s", user_id, relationship, exc)
            return None

    def clear_patterns(self, user_id: str, relationship: str | None = None) -> int:
        removed = self.profiles.clear_patterns(user_id, relationship)
        LOGGER.info("Cleared %s cached pattern profiles for %s", removed, user_id)
        return removed

    async def ensure_patterns(
        self,
        user_id: str,
        relationship: str | None = None,
        known_names: Sequence[str] = (),
    ) -> WritingPatterns | None:
        """Cached patterns, or freshly computed ones. Never blocks on another worker for long."""
        target = relationship or AGGREGATE_KEY
        cached = self.load_patterns(user_id, target)
        if cached is not None:
            return cached

        key = lease_key(user_id, target)
        async with hold(self.leases, key) as acquired:
            if acquired:
                # Another worker may have stored patterns between the miss and the acquire.
                cached = self.load_patterns(user_id, target)
                if cached is not None:
                    LOGGER.debug("Patterns for %s/%s appeared before the lease was granted", user_id, target)
                    return cached
            else:
                LOGGER.info("Pattern computation for %s/%s in progress elsewhere; waiting", user_id, target)
                await asyncio.sleep(self.config.lock_wait_seconds)
                cached = self.load_patterns(user_id, target)
                if cached is not None:
                    return cached
                LOGGER.warning("Patterns for %s/%s still missing after wait; computing anyway", user_id, target)
            return await self._compute_and_store(user_id, target, known_names)

    async def refresh_patterns(
        self,
        user_id: str,
        relationship: str | None = None,
        known_names: Sequence[str] = (),
    ) -> WritingPatterns | None:
        """Recompute unconditionally; raises LockContention if another worker is already on it."""
        target = relationship or AGGREGATE_KEY
        key = lease_key(user_id, target)
        async with hold(self.leases, key) as acquired:
            if not acquired:
                raise LockContention(key)
            return await self._compute_and_store(user_id, target, known_names)

    async def analyze(self, texts: Sequence[str], relationship: str, known_names: Sequence[str] = ()) -> WritingPatterns:
        stats = compute_statistics(
            texts,
            short_max=self.config.short_sentence_max,
            long_min=self.config.long_sentence_min,
            trim_fraction=self.config.trim_fraction,
        )
        batches = await self._analyze_batches(texts, relationship, known_names)
        qualitative = aggregate_batches(
            batches,
            confidence_floor=self.config.confidence_floor,
            max_negative=self.config.max_negative_patterns,
            max_expressions=self.config.max_unique_expressions,
        )
        return WritingPatterns(
            sentence_stats=stats.sentence_stats,
            paragraph_patterns=stats.paragraph_patterns,
            opening_patterns=stats.opening_patterns,
            valediction=stats.valediction,
            negative_patterns=qualitative.negative_patterns,
            response_patterns=qualitative.response_patterns,
            unique_expressions=qualitative.unique_expressions,
            email_count=len(texts),
        )

    async def _compute_and_store(self, user_id: str, target: str, known_names: Sequence[str]) -> WritingPatterns | None:
        corpus = await self.emails.fetch_reply_corpus(user_id, target, self.config.corpus_limit)
        texts = [stored.text for stored in corpus if stored.text.strip()]
        if not texts:
            LOGGER.info("No reply corpus for %s/%s; skipping pattern analysis", user_id, target)
            return None

        patterns = await self.analyze(texts, target, known_names)
        patterns.last_calculated = self.clock()
        self.profiles.save_patterns(user_id, target, patterns.to_dict())
        LOGGER.info(
            "Stored writing patterns for %s/%s from %s emails (%s negative, %s expressions)",
            user_id,
            target,
            patterns.email_count,
            len(patterns.negative_patterns),
            len(patterns.unique_expressions),
        )
        return patterns

    async def _analyze_batches(
        self,
        texts: Sequence[str],
        relationship: str,
        known_names: Sequence[str],
    ) -> List[WeightedBatch]:
        redactor = NameRedactor(known_names)
        size = self.config.batch_size
        chunks = [texts[i : i + size] for i in range(0, len(texts), size)]
        results: List[WeightedBatch] = []
        last_error: Exception | None = None

        for batch_idx, chunk in enumerate(chunks, start=1):
            LOGGER.debug("Analyzing pattern batch %s/%s (%s emails)", batch_idx, len(chunks), len(chunk))
            prompt = PATTERN_ANALYSIS_PROMPT.format(
                relationship=relationship,
                email_count=len(chunk),
                emails="\n\n---\n\n".join(redactor.redact_all(chunk)),
            )
            try:
                analysis = await self.client.generate_json(prompt, BatchPatternAnalysis)
            except ProviderError as exc:
                if not exc.retryable:
                    raise
                last_error = exc
            except (JSONContractError, LLMTimeoutError) as exc:
                last_error = exc
            else:
                results.append(WeightedBatch(email_count=len(chunk), analysis=analysis))
                continue
            LOGGER.warning("Pattern batch %s/%s failed: %s", batch_idx, len(chunks), last_error)

        if chunks and not results:
            raise last_error
        return results
