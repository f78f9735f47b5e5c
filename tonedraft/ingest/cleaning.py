"""Text-cleaning helpers for email bodies."""

from __future__ import annotations

import re
from typing import Final

from bs4 import BeautifulSoup

BLANK_LINES_PATTERN: Final = re.compile(r"\n{3,}")
TRAILING_SPACE_PATTERN: Final = re.compile(r"[ \t]+\n")
WHITESPACE_PATTERN: Final = re.compile(r"\s+", re.MULTILINE)
BLOCK_TAGS: Final = ("p", "div", "br", "li", "tr", "h1", "h2", "h3", "h4", "blockquote")


def html_to_text(html: str) -> str:
    """Render HTML as plain text. Link targets are dropped and images skipped."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head", "img"]):
        tag.decompose()
    for tag in soup.find_all(BLOCK_TAGS):
        if tag.name == "br":
            tag.replace_with("\n")
        else:
            tag.insert_after("\n")
    text = soup.get_text()
    return normalize_newlines(text)


def normalize_newlines(text: str) -> str:
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\xa0", " ")
    text = TRAILING_SPACE_PATTERN.sub("\n", text)
    text = BLANK_LINES_PATTERN.sub("\n\n", text)
    return text.strip()


def normalize_whitespace(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text).strip()
