"""
Models for log entries.

Log entries are stored in the `logs` collection.
Each entry references logbooks and tags by name and carries a catalog of its attachments;
the attachment bytes themselves live in the attachment store and are referenced by `blob_ref`.
"""

from enum import Enum

from pydantic import Field, field_validator

from dal.models.common import UTCDateTime, VersionedModel, MongoBaseModel
from dal.models.logbooks import Logbook, Tag


class Markup(str, Enum):
    none = "none"
    commonmark = "commonmark"


class Attachment(MongoBaseModel):
    """
    A catalog entry for a blob in the attachment store.

    Never mutated after creation.
    """

    id: str
    filename: str
    content_type: str | None = None
    description: str | None = None
    blob_ref: str  # attachment store URL (e.g. "mongo://...", "http://...")


def _unique_by_name(refs):
    seen = set()
    ret = []
    for ref in refs:
        if ref.name not in seen:
            seen.add(ref.name)
            ret.append(ref)
    return ret


class Log(VersionedModel):
    """
    A single log entry document from the `logs` collection.

    `id` is assigned by the store on create; `owner` is stamped from the authenticated principal.
    `source` holds the body as the client submitted it; `body` is what the markup preprocessor produced.
    """

    id: str | None = None
    owner: str | None = None
    title: str | None = None
    source: str | None = None
    body: str = ""
    markup: Markup = Markup.none
    created_at: UTCDateTime | None = None
    modified_at: UTCDateTime | None = None
    logbooks: list[Logbook] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)

    @field_validator("logbooks", "tags")
    @classmethod
    def _as_set(cls, v):
        return _unique_by_name(v)

    def logbook_names(self) -> set[str]:
        return {x.name for x in self.logbooks}

    def tag_names(self) -> set[str]:
        return {x.name for x in self.tags}
