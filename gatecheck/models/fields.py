"""Shared annotated field types for manifest models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Annotated, Any, TypeVar

from pydantic import BeforeValidator

T = TypeVar("T")


def coerce_array(value: Any) -> Any:
    """Return *value* as a list, whatever its cardinality.

    Older manifest writers collapsed single-element arrays to a bare scalar
    and dropped empty ones (``null``). Both come back as lists here.
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (str, bytes, Mapping)):
        return [value]
    if isinstance(value, Iterable):
        return list(value)
    return [value]


# A list that never serializes as a scalar and never disappears.
ArrayField = Annotated[list[T], BeforeValidator(coerce_array)]


def coerce_object(value: Any) -> Any:
    """Treat an explicit ``null`` block as an empty one, so defaults apply."""
    return {} if value is None else value


# A nested block whose ``null`` reads as the block's defaults.
ObjectField = Annotated[T, BeforeValidator(coerce_object)]
