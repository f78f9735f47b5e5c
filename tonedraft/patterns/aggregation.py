"""Merges per-batch model analyses into one weighted result."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .models import BatchPatternAnalysis, NegativePattern, ResponsePatterns, UniqueExpression

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class WeightedBatch:
    """One batch result weighted by the number of emails it covered."""

    email_count: int
    analysis: BatchPatternAnalysis


@dataclass(slots=True)
class QualitativePatterns:
    negative_patterns: List[NegativePattern]
    response_patterns: ResponsePatterns
    unique_expressions: List[UniqueExpression]


def merge_negative_patterns(
    batches: Sequence[WeightedBatch],
    confidence_floor: float = 0.7,
    limit: int = 10,
) -> List[NegativePattern]:
    best: Dict[str, NegativePattern] = {}
    for batch in batches:
        for pattern in batch.analysis.negative_patterns:
            key = pattern.description.lower().strip()
            existing = best.get(key)
            if existing is None or pattern.confidence > existing.confidence:
                best[key] = pattern
    kept = [pattern for pattern in best.values() if pattern.confidence > confidence_floor]
    kept.sort(key=lambda pattern: pattern.confidence, reverse=True)
    return kept[:limit]


def merge_unique_expressions(batches: Sequence[WeightedBatch], limit: int = 15) -> List[UniqueExpression]:
    """Combine phrases case-insensitively; the rate is the email-weighted mean across batches."""
    totals: Dict[str, Dict] = {}
    for batch in batches:
        weight = batch.email_count
        for expression in batch.analysis.unique_expressions:
            key = expression.phrase.lower().strip()
            entry = totals.setdefault(
                key,
                {"phrase": expression.phrase, "weighted_rate": 0.0, "weight": 0, "contexts": defaultdict(float)},
            )
            entry["weighted_rate"] += expression.occurrence_rate * weight
            entry["weight"] += weight
            entry["contexts"][expression.context] += weight

    merged: List[UniqueExpression] = []
    for entry in totals.values():
        if not entry["weight"]:
            continue
        contexts = entry["contexts"]
        context = max(contexts.items(), key=lambda item: item[1])[0]
        if len(contexts) > 2:
            context = f"{context} (used in {len(contexts)} contexts)"
        merged.append(
            UniqueExpression(
                phrase=entry["phrase"],
                context=context,
                occurrence_rate=round(entry["weighted_rate"] / entry["weight"], 4),
            )
        )
    merged.sort(key=lambda expression: expression.occurrence_rate, reverse=True)
    return merged[:limit]


def merge_response_patterns(batches: Sequence[WeightedBatch]) -> ResponsePatterns:
    total_weight = sum(batch.email_count for batch in batches)
    if not total_weight:
        return ResponsePatterns()
    immediate = sum(batch.analysis.response_patterns.immediate * batch.email_count for batch in batches) / total_weight
    contemplative = (
        sum(batch.analysis.response_patterns.contemplative * batch.email_count for batch in batches) / total_weight
    )
    votes: Dict[str, int] = {}
    for batch in batches:
        value = batch.analysis.response_patterns.question_handling
        if value:
            votes[value] = votes.get(value, 0) + batch.email_count
    question_handling = max(votes.items(), key=lambda item: item[1])[0] if votes else ""
    return ResponsePatterns(immediate=immediate, contemplative=contemplative, question_handling=question_handling)


def aggregate_batches(
    batches: Sequence[WeightedBatch],
    confidence_floor: float = 0.7,
    max_negative: int = 10,
    max_expressions: int = 15,
) -> QualitativePatterns:
    LOGGER.debug("Aggregating %s pattern batches", len(batches))
    return QualitativePatterns(
        negative_patterns=merge_negative_patterns(batches, confidence_floor, max_negative),
        response_patterns=merge_response_patterns(batches),
        unique_expressions=merge_unique_expressions(batches, max_expressions),
    )
