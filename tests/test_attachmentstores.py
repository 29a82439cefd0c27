"""
Tests for dal.attachmentstores - media type inference and the GridFS and SeaweedFS stores.
"""

import io
from unittest.mock import MagicMock, patch

import pytest
import requests

from dal.attachmentstores import determine_media_type, parseAttachmentStoreURL, GridFSStore, SeaWeedStore
from dal.exceptions import NotFoundError, UnavailableError
from dal.models import Attachment


class TestMediaType:
    @pytest.mark.parametrize("filename,expected", [
        ("plot.png", "image/png"),
        ("PLOT.PNG", "image/png"),
        ("notes.txt", "text/plain"),
        ("report.pdf", "application/pdf"),
        ("detector.unknownext", "application/octet-stream"),
        ("README", "application/octet-stream"),
        ("", "application/octet-stream"),
    ])
    def test_determine_media_type(self, filename, expected):
        assert determine_media_type(filename) == expected

    def test_recorded_type_wins(self, attachment_store):
        attachment = Attachment(id="a1", filename="plot.png", content_type="application/x-custom", blob_ref="mem://1")
        assert attachment_store.media_type(attachment) == "application/x-custom"

    def test_inferred_when_not_recorded(self, attachment_store):
        attachment = Attachment(id="a1", filename="plot.png", blob_ref="mem://1")
        assert attachment_store.media_type(attachment) == "image/png"


class TestStoreSelection:
    def test_seaweed(self, db):
        store = parseAttachmentStoreURL("http://localhost:9333", db)
        assert isinstance(store, SeaWeedStore)
        assert store.storeurl == "http://localhost:9333/"

    def test_unknown_scheme(self, db):
        with pytest.raises(Exception):
            parseAttachmentStoreURL("ftp://localhost", db)


class TestGridFS:
    @pytest.fixture
    def store(self, db):
        mongomock_gridfs = pytest.importorskip("mongomock.gridfs")
        mongomock_gridfs.enable_gridfs_integration()
        return GridFSStore(db)

    def test_put_and_get(self, store):
        attachment = store.put(io.BytesIO(b"detector image"), "att1", "image.png", "image/png", "A picture")
        assert attachment.blob_ref.startswith("mongo://")
        assert (attachment.id, attachment.filename, attachment.description) == ("att1", "image.png", "A picture")
        assert store.get(attachment).read() == b"detector image"

    def test_get_missing(self, store):
        attachment = Attachment(id="a1", filename="plot.png", blob_ref="mongo://5ff8a6b2c2a1e4d1f0a0a0a0")
        with pytest.raises(NotFoundError):
            store.get(attachment)

    def test_get_invalid_ref(self, store):
        attachment = Attachment(id="a1", filename="plot.png", blob_ref="mongo://not-an-oid")
        with pytest.raises(NotFoundError):
            store.get(attachment)


class TestSeaWeed:
    @pytest.fixture
    def store(self):
        return SeaWeedStore("http://master:9333")

    def response(self, status_code=200, json=None, content=b""):
        resp = requests.Response()
        resp.status_code = status_code
        resp._content = content
        if json is not None:
            resp.json = MagicMock(return_value=json)
        return resp

    def test_put(self, store):
        with patch("requests.post") as post:
            post.side_effect = [self.response(json={"fid": "3,01637037d6", "publicUrl": "volume:8080"}), self.response(status_code=201)]
            attachment = store.put(io.BytesIO(b"detector image"), "att1", "image.png", "image/png", "A picture")
        assert attachment.blob_ref == "http://volume:8080/3,01637037d6"
        assert (attachment.id, attachment.filename, attachment.content_type) == ("att1", "image.png", "image/png")
        assert post.call_args_list[0].args == ("http://master:9333/dir/assign",)
        assert post.call_args_list[1].args == ("http://volume:8080/3,01637037d6",)
        assert post.call_args_list[1].kwargs["files"]["file"][0] == "image.png"

    def test_put_master_down(self, store):
        with patch("requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(UnavailableError):
                store.put(io.BytesIO(b"x"), "att1", "image.png", "image/png")

    def test_get(self, store):
        attachment = Attachment(id="att1", filename="image.png", blob_ref="http://volume:8080/3,01637037d6")
        with patch("requests.get", return_value=self.response(content=b"detector image")) as get:
            assert store.get(attachment).read() == b"detector image"
        assert get.call_args.args == ("http://volume:8080/3,01637037d6",)

    def test_get_missing(self, store):
        attachment = Attachment(id="att1", filename="image.png", blob_ref="http://volume:8080/3,01637037d6")
        with patch("requests.get", return_value=self.response(status_code=404)):
            with pytest.raises(NotFoundError):
                store.get(attachment)

    def test_get_server_error(self, store):
        attachment = Attachment(id="att1", filename="image.png", blob_ref="http://volume:8080/3,01637037d6")
        with patch("requests.get", return_value=self.response(status_code=500)):
            with pytest.raises(UnavailableError):
                store.get(attachment)
