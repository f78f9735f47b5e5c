"""Tone-learning reply drafts from a user's past correspondence."""

from .config import PipelineConfig
from .pipeline import EmailProcessingPipeline, build_pipeline

__all__ = ["EmailProcessingPipeline", "PipelineConfig", "build_pipeline"]
