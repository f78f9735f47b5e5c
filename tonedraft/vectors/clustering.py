"""k-means++ clustering of style vectors into named writing-style groups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from ..errors import ClusteringError
from ..store import ClusterStore, EmailStore
from .similarity import normalize_rows, unit_normalize

LOGGER = logging.getLogger(__name__)

CONVENTIONAL_NAMES = ("formal", "neutral", "casual")


@dataclass(slots=True)
class ClusteringConfig:
    k: int = 3
    max_iterations: int = 100
    seed: int | None = None


@dataclass(slots=True)
class StyleCluster:
    cluster_id: int
    name: str
    centroid: np.ndarray
    member_ids: List[str]
    cohesion: float

    @property
    def size(self) -> int:
        return len(self.member_ids)

    def to_dict(self) -> Dict:
        return {
            "cluster_id": self.cluster_id,
            "name": self.name,
            "centroid": self.centroid.tolist(),
            "member_ids": list(self.member_ids),
            "cohesion": self.cohesion,
        }

    @classmethod
    def from_dict(cls, payload: Dict) -> "StyleCluster":
        return cls(
            cluster_id=int(payload["cluster_id"]),
            name=payload["name"],
            centroid=np.asarray(payload["centroid"], dtype=np.float64),
            member_ids=list(payload.get("member_ids", [])),
            cohesion=float(payload.get("cohesion", 0.0)),
        )


@dataclass(slots=True)
class ClusteringRun:
    clusters: List[StyleCluster] = field(default_factory=list)
    iterations: int = 0
    converged: bool = False


class StyleClusteringEngine:
    """Cosine-distance k-means with k-means++ seeding; always terminates."""

    def __init__(self, config: ClusteringConfig | None = None) -> None:
        self.config = config or ClusteringConfig()
        self.rng = np.random.default_rng(self.config.seed)

    def cluster(self, items: Sequence[Tuple[str, np.ndarray]], k: int | None = None) -> ClusteringRun:
        if not items:
            raise ClusteringError("Cannot cluster an empty vector set.")
        k = self.config.k if k is None else k
        if k < 1:
            raise ClusteringError(f"Cluster count must be positive, got {k}.")
        if k > len(items):
            LOGGER.warning("Requested %s clusters for %s vectors; using %s.", k, len(items), len(items))
            k = len(items)

        ids = [item_id for item_id, _ in items]
        vectors = normalize_rows(np.vstack([vector for _, vector in items]))

        centroids = vectors[self.initialize_centroids(vectors, k)].copy()
        assignments: np.ndarray | None = None
        run = ClusteringRun()
        for iteration in range(1, max(self.config.max_iterations, 1) + 1):
            run.iterations = iteration
            updated = (vectors @ normalize_rows(centroids).T).argmax(axis=1)
            if assignments is not None and np.array_equal(updated, assignments):
                run.converged = True
                break
            assignments = updated
            for label in range(k):
                members = vectors[assignments == label]
                if len(members):
                    centroids[label] = members.mean(axis=0)

        run.clusters = self._build_clusters(ids, vectors, assignments, k)
        LOGGER.info(
            "Clustered %s vectors into %s groups in %s iterations (converged=%s)",
            len(ids),
            len(run.clusters),
            run.iterations,
            run.converged,
        )
        return run

    def initialize_centroids(self, vectors: np.ndarray, k: int) -> List[int]:
        """k-means++ seeding over unit vectors; returns row indices, never repeating one."""
        count = len(vectors)
        chosen = [int(self.rng.integers(count))]
        while len(chosen) < k:
            similarity = vectors @ vectors[chosen].T
            distance = np.clip(1.0 - similarity.max(axis=1), 0.0, None)
            weights = distance**2
            weights[chosen] = 0.0
            total = weights.sum()
            if total > 0:
                chosen.append(int(self.rng.choice(count, p=weights / total)))
            else:
                # Fewer distinct vectors than k: fall back to any unused row.
                remaining = [idx for idx in range(count) if idx not in chosen]
                chosen.append(int(self.rng.choice(remaining)))
        return chosen

    @staticmethod
    def _build_clusters(ids: List[str], vectors: np.ndarray, assignments: np.ndarray, k: int) -> List[StyleCluster]:
        groups = []
        for label in range(k):
            indices = np.where(assignments == label)[0]
            if len(indices) == 0:
                LOGGER.debug("Dropping empty cluster %s", label)
                continue
            members = vectors[indices]
            centroid = members.mean(axis=0)
            cohesion = float(np.mean(members @ unit_normalize(centroid)))
            groups.append((indices, centroid, cohesion))

        groups.sort(key=lambda group: len(group[0]), reverse=True)
        names = CONVENTIONAL_NAMES if k == len(CONVENTIONAL_NAMES) else ()
        clusters: List[StyleCluster] = []
        for rank, (indices, centroid, cohesion) in enumerate(groups):
            clusters.append(
                StyleCluster(
                    cluster_id=rank,
                    name=names[rank] if rank < len(names) else f"style-{rank + 1}",
                    centroid=centroid,
                    member_ids=[ids[idx] for idx in indices],
                    cohesion=cohesion,
                )
            )
        return clusters


class StyleClusteringService:
    """Re-clusters a user's stored style vectors and persists the result."""

    def __init__(self, emails: EmailStore, clusters: ClusterStore, engine: StyleClusteringEngine | None = None) -> None:
        self.emails = emails
        self.clusters = clusters
        self.engine = engine or StyleClusteringEngine()

    async def recluster(self, user_id: str, relationship: str, k: int | None = None) -> List[StyleCluster]:
        items = await self.emails.fetch_style_vectors(user_id, relationship)
        run = self.engine.cluster(items, k)
        await self.clusters.save_clusters(user_id, relationship, run.clusters)
        return run.clusters
