"""Detail-key normalization to lowerCamelCase."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_SEPARATORS = re.compile(r"[\s_\-.]+")
# Split "IndexerID2Name" into "Indexer", "ID2", "Name"; keep acronyms together.
_WORDS = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z0-9]+")


def to_lower_camel(key: str) -> str:
    """``indexer_id`` / ``Indexer-Id`` / ``IndexerId`` / ``API_KEY`` -> lowerCamelCase."""
    words: list[str] = []
    for chunk in _SEPARATORS.split(key.strip()):
        words.extend(_WORDS.findall(chunk))
    if not words:
        return key
    head, *tail = words
    return head.lower() + "".join(w[:1].upper() + w[1:].lower() for w in tail)


def normalize_keys(value: Any) -> Any:
    """Recursively rename mapping keys to lowerCamelCase.

    Sequences (tuples and sets included) come back as lists.
    """
    if isinstance(value, Mapping):
        return {to_lower_camel(str(k)): normalize_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_keys(item) for item in value]
    return value
