from __future__ import annotations

import re
from typing import List

DEFAULT_LIMIT = 2000  # Discord message length limit
SECTION_DELIMITER = "---"
_LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\r?\n)+")


def chunk(text: str, limit: int = DEFAULT_LIMIT) -> List[str]:
    """
    Split text into pieces of at most `limit` characters.

    Prefers the last line break inside each window; the break itself is
    consumed. Without a usable break the text is cut at exactly `limit`
    and nothing is consumed.
    """
    if limit <= 0:
        raise ValueError(f"chunk limit must be positive, got {limit}")
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    rest = text
    while rest:
        if len(rest) <= limit:
            chunks.append(rest)
            break
        split = rest.rfind("\n", 0, limit)
        if split > 0:
            chunks.append(rest[:split])
            rest = rest[split + 1 :]
        else:
            chunks.append(rest[:limit])
            rest = rest[limit:]
    return chunks


def split_sections(text: str) -> List[str]:
    """
    Split on lines consisting of exactly '---'; blank sections are dropped.

    Leading blank lines and trailing whitespace are trimmed; indentation of
    the first line is kept.
    """
    sections: List[str] = []
    current: List[str] = []
    for line in text.split("\n"):
        if line.rstrip("\r") == SECTION_DELIMITER:
            sections.append("\n".join(current))
            current = []
        else:
            current.append(line)
    sections.append("\n".join(current))
    return [_LEADING_BLANK_LINES.sub("", s).rstrip() for s in sections if s.strip()]
