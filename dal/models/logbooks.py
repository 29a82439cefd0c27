"""
Models for logbooks and tags.

Logbooks and tags live in the `logbooks` and `tags` collections.
Both are keyed by their name and are never physically removed; a delete marks them Inactive.
"""

from enum import Enum

from dal.models.common import VersionedModel


class State(str, Enum):
    Active = "Active"
    Inactive = "Inactive"


class Logbook(VersionedModel):
    """
    A logbook (category) a log entry belongs to.

    NOTE: `owner` is optional so that the same model can be used for the
    logbook references embedded in a log entry, where clients typically only send the name.
    """

    name: str
    owner: str | None = None
    state: State = State.Active


class Tag(VersionedModel):
    """
    A label attachable to a log entry. Same shape and lifecycle as a logbook.
    """

    name: str
    owner: str | None = None
    state: State = State.Active
