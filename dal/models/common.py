"""
Common types and base model configuration shared across all models.
"""

from datetime import datetime
from typing import Annotated, Any

import pytz
from pydantic import BaseModel, ConfigDict, BeforeValidator


def _validate_utc_millis(v: Any) -> Any:
    # BSON dates carry millisecond precision and come back naive from tz-unaware clients.
    if isinstance(v, datetime):
        if v.tzinfo is None:
            v = pytz.UTC.localize(v)
        else:
            v = v.astimezone(pytz.UTC)
        return v.replace(microsecond=(v.microsecond // 1000) * 1000)
    return v


UTCDateTime = Annotated[datetime, BeforeValidator(_validate_utc_millis)]
"""A timezone aware UTC datetime truncated to millisecond precision."""


class MongoBaseModel(BaseModel):
    """Base model for all MongoDB document models."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )


class VersionedModel(MongoBaseModel):
    """
    Base model for documents owned by the entity store.

    The version is the optimistic concurrency token; the store increments it on every update
    and rejects updates that carry a stale version.
    """

    version: int = 0
