"""Aggregated style profile for a relationship, built from stored clusters and the reply corpus."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from ..store import ClusterStore, EmailStore
from .statistics import count_words

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class StyleProfile:
    relationship: str
    dominant_style: str = ""
    style_shares: Dict[str, float] = field(default_factory=dict)
    avg_cohesion: float = 0.0
    avg_words_per_email: float = 0.0
    sample_size: int = 0

    def to_prompt_lines(self) -> List[str]:
        lines = [f"Relationship: {self.relationship} ({self.sample_size} past replies)"]
        if self.dominant_style:
            lines.append(f"Dominant style: {self.dominant_style}")
        if self.style_shares:
            shares = ", ".join(f"{name} {share:.0f}%" for name, share in self.style_shares.items())
            lines.append(f"Style mix: {shares}")
        if self.avg_words_per_email:
            lines.append(f"Typical length: about {self.avg_words_per_email:.0f} words")
        return lines


class StyleProfileBuilder:
    def __init__(self, clusters: ClusterStore, emails: EmailStore, corpus_limit: int = 200) -> None:
        self.clusters = clusters
        self.emails = emails
        self.corpus_limit = corpus_limit

    async def build(self, user_id: str, relationship: str) -> StyleProfile | None:
        clusters = await self.clusters.load_clusters(user_id, relationship)
        corpus = await self.emails.fetch_reply_corpus(user_id, relationship, self.corpus_limit)
        if not clusters and not corpus:
            return None

        profile = StyleProfile(relationship=relationship, sample_size=len(corpus))
        member_total = sum(cluster.size for cluster in clusters)
        if member_total:
            ordered = sorted(clusters, key=lambda cluster: cluster.size, reverse=True)
            profile.dominant_style = ordered[0].name
            profile.style_shares = {cluster.name: cluster.size * 100 / member_total for cluster in ordered}
            profile.avg_cohesion = float(np.mean([cluster.cohesion for cluster in ordered]))
        if corpus:
            profile.avg_words_per_email = float(np.mean([count_words(stored.text) for stored in corpus]))
        LOGGER.debug("Built style profile for %s/%s: %s", user_id, relationship, profile.dominant_style or "n/a")
        return profile
