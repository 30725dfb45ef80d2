"""
Conversation directory: the process-scoped id <-> slug lookup table.

Built once when the transport connects and passed explicitly to whatever
needs human-readable directory names.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from ..contracts.v1 import ConversationInfo

logger = logging.getLogger("scribe.directory")

_SLUG_DROP = re.compile(r"[^A-Za-z0-9_-]")
_SUFFIX_LEN = 6


def slugify(name: str) -> str:
    """Delete (not substitute) every character outside [A-Za-z0-9_-]."""
    return _SLUG_DROP.sub("", str(name or ""))


class ConversationDirectory:
    def __init__(self) -> None:
        self._slugs: Dict[str, str] = {}  # id -> slug
        self._ids: Dict[str, str] = {}  # slug -> id

    @classmethod
    def build(cls, conversations: Iterable[ConversationInfo]) -> "ConversationDirectory":
        directory = cls()
        for conv in conversations:
            directory.register(conv.id, conv.display_name)
        return directory

    def register(self, conversation_id: str, display_name: str) -> str:
        """Assign a slug to a conversation; idempotent for a known id."""
        if conversation_id in self._slugs:
            return self._slugs[conversation_id]

        slug = slugify(display_name)
        if not slug:
            slug = slugify(conversation_id) or conversation_id
        if slug in self._ids:
            base = slug
            slug = f"{base}-{slugify(conversation_id)[-_SUFFIX_LEN:]}"
            if slug in self._ids:
                slug = slugify(conversation_id) or conversation_id
            logger.warning(
                f"slug collision on {base!r}, using {slug!r}",
                extra={"conversation_id": conversation_id},
            )
        if slug in self._ids:
            raise ValueError(f"cannot assign a unique directory to conversation {conversation_id}")

        self._slugs[conversation_id] = slug
        self._ids[slug] = conversation_id
        return slug

    def slug_for(self, conversation_id: str) -> str:
        # Unknown ids use the raw id as directory name.
        return self._slugs.get(conversation_id, conversation_id)

    def id_for(self, slug: str) -> str:
        return self._ids.get(slug, slug)

    def lookup(self, conversation_id: str) -> Optional[str]:
        return self._slugs.get(conversation_id)

    def slugs(self) -> List[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._slugs)
