"""
Shared pytest fixtures for the logbook tests.

mongomock stands in for the mongo server and an in memory store stands in for the attachment store.
"""

import datetime
import io

import mongomock
import pytest
import pytz
from bson import ObjectId

from dal.attachmentstores import AttachmentStore
from dal.entity_store import LogStore
from dal.exceptions import NotFoundError
from dal.models import Attachment
from dal.olog import LogService
from dal.registry import logbook_registry, tag_registry


NOW = datetime.datetime(2021, 1, 20, 12, 0, 0, 123000, tzinfo=pytz.UTC)


class InMemoryAttachmentStore(AttachmentStore):
    """Keeps the blobs in a dict keyed by blob_ref."""

    def __init__(self):
        self.blobs = {}

    def put(self, filecontents, attachment_id, filename, content_type, description=None):
        ref = "mem://" + str(ObjectId())
        self.blobs[ref] = filecontents.read()
        return Attachment(id=attachment_id, filename=filename, content_type=content_type, description=description, blob_ref=ref)

    def get(self, attachment):
        if attachment.blob_ref not in self.blobs:
            raise NotFoundError("No blob " + attachment.blob_ref)
        return io.BytesIO(self.blobs[attachment.blob_ref])


class FixedClock:
    """A settable clock; tests move it to create entries at different times."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


class RecordingProducer:
    """Records what would have been sent to kafka."""

    def __init__(self):
        self.sent = []

    def send(self, topic, value):
        self.sent.append((topic, value))

    def close(self):
        pass


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def db(mongo_client):
    return mongo_client["olog"]


@pytest.fixture
def logbooks(db):
    return logbook_registry(db)


@pytest.fixture
def tags(db):
    return tag_registry(db)


@pytest.fixture
def logs(db):
    store = LogStore(db)
    store.ensure_indexes()
    return store


@pytest.fixture
def attachment_store():
    return InMemoryAttachmentStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def service(logs, logbooks, tags, attachment_store, clock):
    return LogService(logs, logbooks, tags, attachment_store, clock=clock)


@pytest.fixture
def producer():
    return RecordingProducer()


@pytest.fixture
def app(mongo_client, attachment_store, producer):
    from start import create_app
    app = create_app(client=mongo_client, attachmentstore=attachment_store, producer=producer)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
