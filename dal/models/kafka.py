"""
Models for Kafka event messages.

Create/update operations in the service layer publish change events to Kafka topics
named after the collection (`logs`, `logbooks`, `tags`).
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class KafkaEvent(BaseModel):
    """
    The standard Kafka event envelope used throughout the application.

    NOTE: The `value` field contains the business object and its shape
    depends on the topic. We use dict[str, Any] here since the payload type varies.
    """

    collection: str
    crud: Literal["Create", "Update", "Delete"] = Field("Create", alias="CRUD")
    value: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}
