"""
Pydantic models for the olog data access layer.

These models represent the MongoDB document schemas used throughout the application:
logbooks, tags, log entries with their attachments, and the kafka change events.
"""

from dal.models.common import MongoBaseModel, VersionedModel, UTCDateTime
from dal.models.logbooks import State, Logbook, Tag
from dal.models.logs import Markup, Attachment, Log
from dal.models.kafka import KafkaEvent

__all__ = [
    # Common
    "MongoBaseModel",
    "VersionedModel",
    "UTCDateTime",
    # Logbooks and tags
    "State",
    "Logbook",
    "Tag",
    # Logs
    "Markup",
    "Attachment",
    "Log",
    # Kafka
    "KafkaEvent",
]
