"""Pydantic models for mined writing patterns and the per-batch model contract."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class _PatternModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SentenceDistribution(_PatternModel):
    short: float = 0.0
    medium: float = 0.0
    long: float = 0.0


class SentenceStats(_PatternModel):
    avg_length: float = 0.0
    median_length: float = 0.0
    trimmed_mean: float = 0.0
    min_length: int = 0
    max_length: int = 0
    std_deviation: float = 0.0
    percentile25: float = 0.0
    percentile75: float = 0.0
    distribution: SentenceDistribution = Field(default_factory=SentenceDistribution)
    sentence_count: int = 0
    examples: List[str] = Field(default_factory=list)


class ParagraphPattern(_PatternModel):
    structure: str
    percentage: int = Field(ge=0, le=100)


class OpeningPattern(_PatternModel):
    pattern: str
    percentage: int = Field(ge=0, le=100)


class ValedictionPattern(_PatternModel):
    phrase: str
    percentage: int = Field(ge=0, le=100)


class NegativePattern(_PatternModel):
    description: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)
    examples: List[str] = Field(default_factory=list)
    context: str = ""


class ResponsePatterns(_PatternModel):
    immediate: float = 0.0
    contemplative: float = 0.0
    question_handling: str = Field(default="", alias="questionHandling")


class UniqueExpression(_PatternModel):
    phrase: str = Field(min_length=1)
    context: str = ""
    occurrence_rate: float = Field(default=0.0, ge=0.0, alias="occurrenceRate")


class BatchPatternAnalysis(_PatternModel):
    """JSON contract returned by the model for one batch of emails."""

    negative_patterns: List[NegativePattern] = Field(alias="negativePatterns")
    response_patterns: ResponsePatterns = Field(alias="responsePatterns")
    unique_expressions: List[UniqueExpression] = Field(alias="uniqueExpressions")


class WritingPatterns(_PatternModel):
    """Everything mined for one (user, relationship) pair."""

    sentence_stats: SentenceStats = Field(default_factory=SentenceStats)
    paragraph_patterns: List[ParagraphPattern] = Field(default_factory=list)
    opening_patterns: List[OpeningPattern] = Field(default_factory=list)
    valediction: List[ValedictionPattern] = Field(default_factory=list)
    negative_patterns: List[NegativePattern] = Field(default_factory=list)
    response_patterns: ResponsePatterns = Field(default_factory=ResponsePatterns)
    unique_expressions: List[UniqueExpression] = Field(default_factory=list)
    email_count: int = 0
    last_calculated: datetime | None = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
