"""Semantic and style encoders backed by sentence-transformers."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from ..config import EmbeddingConfig
from .similarity import DualVectors

LOGGER = logging.getLogger(__name__)


class EmbeddingCache:
    """Vectors keyed by model and text digest, persisted as one JSON file shared by all encoders."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._vectors: Dict[str, List[float]] = {}
        self._dirty = False
        self._load()

    def __len__(self) -> int:
        return len(self._vectors)

    @staticmethod
    def key(model_name: str, text: str) -> str:
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return f"{model_name}:{digest}"

    def get(self, model_name: str, text: str) -> np.ndarray | None:
        vector = self._vectors.get(self.key(model_name, text))
        return None if vector is None else np.asarray(vector, dtype=np.float32)

    def put(self, model_name: str, text: str, vector: np.ndarray) -> None:
        self._vectors[self.key(model_name, text)] = [float(value) for value in vector]
        self._dirty = True

    def flush(self) -> None:
        if not self._dirty:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(self._vectors, fh)
        os.replace(tmp_path, self.path)
        self._dirty = False
        LOGGER.debug("Flushed %s cached embeddings to %s", len(self._vectors), self.path)

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            self._vectors = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Ignoring unreadable embedding cache %s: %s", self.path, exc)
            self._vectors = {}


class TextEncoder:
    """One sentence-transformers model producing unit-length vectors."""

    def __init__(self, model_name: str, batch_size: int = 32, cache: EmbeddingCache | None = None) -> None:
        self.model_name = model_name
        self.batch_size = batch_size
        self.model = SentenceTransformer(model_name)
        self.cache = cache
        LOGGER.info("Loaded encoder %s (%s dims)", model_name, self.dimension)

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    def encode(self, text: str) -> np.ndarray:
        return self.encode_batch([text])[0]

    def encode_batch(self, texts: Sequence[str]) -> np.ndarray:
        """Encode many texts; row i equals ``encode(texts[i])``."""
        if not texts:
            return np.empty((0, self.dimension), dtype=np.float32)

        collected: Dict[int, np.ndarray] = {}
        pending: List[int] = []
        for idx, text in enumerate(texts):
            cached = self.cache.get(self.model_name, text) if self.cache is not None else None
            if cached is not None:
                collected[idx] = cached
            else:
                pending.append(idx)

        if pending:
            vectors = self.model.encode(
                [texts[idx] for idx in pending],
                batch_size=self.batch_size,
                convert_to_numpy=True,
                normalize_embeddings=True,
                show_progress_bar=False,
            )
            for idx, vector in zip(pending, vectors, strict=True):
                collected[idx] = np.asarray(vector, dtype=np.float32)
                if self.cache is not None:
                    self.cache.put(self.model_name, texts[idx], collected[idx])
            if self.cache is not None:
                self.cache.flush()

        return np.vstack([collected[idx] for idx in range(len(texts))])


class DualEncoder:
    """Pairs independent semantic (topic) and style (register) encoders."""

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        semantic: TextEncoder | None = None,
        style: TextEncoder | None = None,
    ) -> None:
        self.config = config or EmbeddingConfig()
        cache = EmbeddingCache(self.config.cache_path) if self.config.cache_path else None
        self.semantic = semantic or TextEncoder(self.config.semantic_model_name, self.config.batch_size, cache)
        self.style = style or TextEncoder(self.config.style_model_name, self.config.batch_size, cache)

    def encode(self, text: str) -> DualVectors:
        return DualVectors(semantic=self.semantic.encode(text), style=self.style.encode(text))

    def encode_batch(self, texts: Sequence[str]) -> List[DualVectors]:
        semantic = self.semantic.encode_batch(texts)
        style = self.style.encode_batch(texts)
        return [DualVectors(semantic=sem, style=sty) for sem, sty in zip(semantic, style, strict=True)]
