"""Failure classification record produced by the load-failure classifier."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class FailureClassification(BaseModel):
    """Classifier output; ``detected=False`` means no rule matched."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    detected: bool = False
    classification: str | None = None
    severity: str | None = None
    matched_line: str | None = None
