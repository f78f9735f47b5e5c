"""Writing-pattern mining and style profiles."""

from .analyzer import WritingPatternAnalyzer
from .models import WritingPatterns
from .style_profile import StyleProfile, StyleProfileBuilder

__all__ = ["StyleProfile", "StyleProfileBuilder", "WritingPatternAnalyzer", "WritingPatterns"]
