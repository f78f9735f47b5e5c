"""Picks reply examples: direct correspondence first, then the relationship category."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List

from ..config import RetrievalConfig
from ..store import RelationshipDirectory, RelationshipInfo
from .retrieval import Example, RetrievalStats, VectorRetrievalService
from .similarity import DualVectors

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ExampleSelection:
    relationship: RelationshipInfo
    examples: List[Example] = field(default_factory=list)
    direct_count: int = 0
    category_count: int = 0
    stats: List[RetrievalStats] = field(default_factory=list)


class ExampleSelector:
    def __init__(
        self,
        retrieval: VectorRetrievalService,
        relationships: RelationshipDirectory,
        config: RetrievalConfig | None = None,
    ) -> None:
        self.retrieval = retrieval
        self.relationships = relationships
        self.config = config or retrieval.config

    async def select(
        self,
        user_id: str,
        query: DualVectors,
        recipient: str,
        desired_count: int | None = None,
    ) -> ExampleSelection:
        desired = self.config.example_count if desired_count is None else desired_count
        relationship = await self.relationships.lookup(user_id, recipient)
        selection = ExampleSelection(relationship=relationship)

        direct_limit = math.floor(desired * self.config.direct_share)
        if direct_limit > 0:
            direct = await self.retrieval.search(
                user_id,
                query.semantic,
                query.style,
                limit=direct_limit,
                recipient=recipient,
                direct_correspondence=True,
            )
            selection.examples.extend(direct.examples)
            selection.direct_count = len(direct.examples)
            selection.stats.append(direct.stats)

        remaining = desired - selection.direct_count
        if remaining > 0:
            category = await self.retrieval.search(
                user_id,
                query.semantic,
                query.style,
                limit=remaining,
                relationship=relationship.type,
                exclude_ids=[example.email_id for example in selection.examples],
            )
            selection.examples.extend(category.examples)
            selection.category_count = len(category.examples)
            selection.stats.append(category.stats)

        LOGGER.info(
            "Selected %s examples for %s (%s direct, %s %s)",
            len(selection.examples),
            recipient,
            selection.direct_count,
            selection.category_count,
            relationship.type,
        )
        return selection
