"""Parsing and cleaning of incoming messages."""

from .models import EmailAddress, NormalizedEmail
from .normalizer import EmailNormalizer

__all__ = ["EmailAddress", "EmailNormalizer", "NormalizedEmail"]
