"""Removes a signature name the model may have echoed at the end of a reply."""

from __future__ import annotations

import logging
import re
from typing import List, Sequence

from thefuzz import fuzz

LOGGER = logging.getLogger(__name__)

TRAILING_WINDOW = 3
MAX_NAME_WORDS = 4
PUNCTUATION = " \t-–—,.!~"


class TypedNameRemover:
    """Strips the user's typed name from the tail of generated text.

    A configured removal pattern is applied to the last matching line, working bottom-up.
    Short trailing lines that fuzzily match one of the user's names are dropped as well.
    """

    def __init__(self, names: Sequence[str] = (), removal_pattern: str = "", similarity_threshold: int = 90) -> None:
        self.names = [name.strip() for name in names if name and name.strip()]
        self.similarity_threshold = similarity_threshold
        self.pattern = None
        if removal_pattern:
            try:
                self.pattern = re.compile(removal_pattern, re.IGNORECASE)
            except re.error as exc:
                LOGGER.warning("Ignoring invalid typed-name pattern %r: %s", removal_pattern, exc)

    def remove(self, text: str) -> str:
        lines = text.rstrip().split("\n")
        if self.pattern is not None:
            lines = self._remove_by_pattern(lines)
        lines = self._remove_fuzzy_tail(lines)
        return "\n".join(lines).rstrip()

    def _remove_by_pattern(self, lines: List[str]) -> List[str]:
        for idx in range(len(lines) - 1, -1, -1):
            if self.pattern.search(lines[idx]):
                remainder = self.pattern.sub("", lines[idx], count=1).strip()
                LOGGER.debug("Removed typed name on line %s", idx)
                if remainder:
                    lines[idx] = remainder
                else:
                    del lines[idx]
                break
        return lines

    def _remove_fuzzy_tail(self, lines: List[str]) -> List[str]:
        if not self.names:
            return lines
        window_start = max(len(lines) - TRAILING_WINDOW, 0)
        for idx in range(len(lines) - 1, window_start - 1, -1):
            candidate = lines[idx].strip(PUNCTUATION)
            if not candidate:
                continue
            if len(candidate.split()) > MAX_NAME_WORDS:
                break
            if self._matches_name(candidate):
                LOGGER.debug("Removed echoed signature line %r", candidate)
                del lines[idx]
        while lines and not lines[-1].strip():
            lines.pop()
        return lines

    def _matches_name(self, candidate: str) -> bool:
        return any(fuzz.ratio(candidate.lower(), name.lower()) >= self.similarity_threshold for name in self.names)
