"""Deterministic writing statistics computed directly from reply texts."""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from .models import (
    OpeningPattern,
    ParagraphPattern,
    SentenceDistribution,
    SentenceStats,
    ValedictionPattern,
)

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=\S)")
WORD_PATTERN = re.compile(r"[A-Za-z0-9'’]+(?:-[A-Za-z0-9'’]+)*")
GREETING_PATTERN = re.compile(r"\b(hi|hello|hey|dear|greetings|good morning|good afternoon|good evening)\b", re.IGNORECASE)
OPENING_TRUNCATE = re.compile(r"^[^.,!?]+[.,!?]?")

NO_GREETING = "[right to the point]"
NO_VALEDICTION = "[None]"
VALEDICTION_WINDOW = 3

MIN_SENTENCE_EXAMPLES = 3
MAX_SENTENCE_EXAMPLES = 5

# Checked in order; the first phrase found anywhere in the closing window wins.
VALEDICTIONS: Tuple[Tuple[str, re.Pattern], ...] = tuple(
    (label, re.compile(rf"\b{pattern}\b", re.IGNORECASE))
    for label, pattern in (
        ("Thank you", r"thank you"),
        ("Thanks", r"thanks"),
        ("Best regards", r"best regards"),
        ("Kind regards", r"kind regards"),
        ("Warm regards", r"warm regards"),
        ("Regards", r"regards"),
        ("Best", r"best"),
        ("Sincerely", r"sincerely"),
        ("Cheers", r"cheers"),
        ("Warmly", r"warmly"),
        ("Talk soon", r"talk soon"),
        ("Speak soon", r"speak soon"),
    )
)

SINGLE_LINE = "single-line"
BRIEF_MULTI_LINE = "brief-multi-line"
MULTI_PARAGRAPH = "multi-paragraph"
MIXED = "mixed"


@dataclass(slots=True)
class StatisticalPatterns:
    sentence_stats: SentenceStats
    paragraph_patterns: List[ParagraphPattern]
    opening_patterns: List[OpeningPattern]
    valediction: List[ValedictionPattern]


def split_sentences(text: str) -> List[str]:
    sentences: List[str] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        sentences.extend(part.strip() for part in SENTENCE_BOUNDARY.split(line) if part.strip())
    return sentences


def count_words(sentence: str) -> int:
    return len(WORD_PATTERN.findall(sentence))


def sentence_distribution(word_counts: Sequence[int], short_max: int = 10, long_min: int = 25) -> SentenceDistribution:
    """Fractions of sentences that are short (< short_max), long (> long_min) or in between."""
    if not word_counts:
        return SentenceDistribution()
    total = len(word_counts)
    short = sum(1 for count in word_counts if count < short_max)
    long = sum(1 for count in word_counts if count > long_min)
    return SentenceDistribution(short=short / total, medium=(total - short - long) / total, long=long / total)


def trimmed_mean(values: Sequence[float], fraction: float = 0.05) -> float:
    ordered = sorted(values)
    cut = math.floor(len(ordered) * fraction)
    kept = ordered[cut : len(ordered) - cut] if cut else ordered
    return float(np.mean(kept)) if kept else 0.0


def example_sentences(
    sentences: Sequence[str],
    word_counts: Sequence[int],
    short_max: int = 10,
    long_min: int = 25,
) -> List[str]:
    """One sentence per length bucket (short, medium, long), topped up to three in text order."""
    buckets: List[List[str]] = [[], [], []]
    for sentence, count in zip(sentences, word_counts):
        if count < short_max:
            buckets[0].append(sentence)
        elif count > long_min:
            buckets[2].append(sentence)
        else:
            buckets[1].append(sentence)

    examples = [bucket[len(bucket) // 2] for bucket in buckets if bucket]
    for sentence in sentences:
        if len(examples) >= MIN_SENTENCE_EXAMPLES:
            break
        if sentence not in examples:
            examples.append(sentence)
    return examples[:MAX_SENTENCE_EXAMPLES]


def sentence_statistics(
    texts: Iterable[str],
    short_max: int = 10,
    long_min: int = 25,
    trim_fraction: float = 0.05,
) -> SentenceStats:
    sentences: List[str] = []
    counts: List[int] = []
    for text in texts:
        for sentence in split_sentences(text):
            count = count_words(sentence)
            if count > 0:
                sentences.append(sentence)
                counts.append(count)
    if not counts:
        return SentenceStats()
    values = np.asarray(counts, dtype=np.float64)
    return SentenceStats(
        avg_length=float(values.mean()),
        median_length=float(np.median(values)),
        trimmed_mean=trimmed_mean(counts, trim_fraction),
        min_length=min(counts),
        max_length=max(counts),
        std_deviation=float(values.std()),
        percentile25=float(np.percentile(values, 25)),
        percentile75=float(np.percentile(values, 75)),
        distribution=sentence_distribution(counts, short_max, long_min),
        sentence_count=len(counts),
        examples=example_sentences(sentences, counts, short_max, long_min),
    )


def extract_opening(text: str) -> str:
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        if not GREETING_PATTERN.search(line):
            return NO_GREETING
        match = OPENING_TRUNCATE.match(line)
        opening = match.group(0).strip() if match else line
        return opening if len(opening) >= 2 else NO_GREETING
    return NO_GREETING


def extract_valediction(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    window = lines[-VALEDICTION_WINDOW:]
    for label, pattern in VALEDICTIONS:
        if any(pattern.search(line) for line in window):
            return label
    return NO_VALEDICTION


def count_line_breaks(text: str) -> int:
    """Breaks between non-empty lines; blank spacer lines do not count."""
    return max(len([line for line in text.splitlines() if line.strip()]) - 1, 0)


def classify_paragraph_structure(text: str) -> str:
    stripped = text.strip()
    line_breaks = count_line_breaks(stripped)
    sentences = len(split_sentences(stripped))
    if sentences <= 2 and line_breaks <= 1:
        return SINGLE_LINE
    if sentences <= 4 and 2 <= line_breaks <= 4:
        return BRIEF_MULTI_LINE
    has_greeting = extract_opening(stripped) != NO_GREETING
    has_closing = extract_valediction(stripped) != NO_VALEDICTION
    if has_greeting and has_closing and line_breaks > 4:
        return MULTI_PARAGRAPH
    return MIXED


def percentage_histogram(labels: Sequence[str]) -> List[Tuple[str, int]]:
    """Whole-number label shares in percent, most frequent first, summing to exactly 100.

    Uses the largest-remainder method: every share is floored, then the missing points go
    one each to the labels with the largest remainders (ties keep frequency order).
    """
    if not labels:
        return []
    counts = Counter(labels).most_common()
    total = len(labels)
    shares = [divmod(count * 100, total) for _, count in counts]
    percents = [whole for whole, _ in shares]
    missing = 100 - sum(percents)
    by_remainder = sorted(range(len(shares)), key=lambda idx: shares[idx][1], reverse=True)
    for idx in by_remainder[:missing]:
        percents[idx] += 1
    return [(label, pct) for (label, _), pct in zip(counts, percents)]


def compute_statistics(
    texts: Sequence[str],
    short_max: int = 10,
    long_min: int = 25,
    trim_fraction: float = 0.05,
) -> StatisticalPatterns:
    return StatisticalPatterns(
        sentence_stats=sentence_statistics(texts, short_max, long_min, trim_fraction),
        paragraph_patterns=[
            ParagraphPattern(structure=label, percentage=pct)
            for label, pct in percentage_histogram([classify_paragraph_structure(text) for text in texts])
        ],
        opening_patterns=[
            OpeningPattern(pattern=label, percentage=pct)
            for label, pct in percentage_histogram([extract_opening(text) for text in texts])
        ],
        valediction=[
            ValedictionPattern(phrase=label, percentage=pct)
            for label, pct in percentage_histogram([extract_valediction(text) for text in texts])
        ],
    )
