"""Vector encoding, retrieval and style clustering.

``embeddings`` is not re-exported because importing it loads sentence-transformers.
"""

from .bm25 import BM25Encoder, BM25State, SparseVector
from .clustering import StyleCluster, StyleClusteringEngine, StyleClusteringService
from .example_selector import ExampleSelection, ExampleSelector
from .retrieval import Example, RetrievalResult, VectorRetrievalService, temporal_weight
from .similarity import DualVectors, SimilarityIndex, cosine_similarity

__all__ = [
    "BM25Encoder",
    "BM25State",
    "DualVectors",
    "Example",
    "ExampleSelection",
    "ExampleSelector",
    "RetrievalResult",
    "SimilarityIndex",
    "SparseVector",
    "StyleCluster",
    "StyleClusteringEngine",
    "StyleClusteringService",
    "VectorRetrievalService",
    "cosine_similarity",
    "temporal_weight",
]
