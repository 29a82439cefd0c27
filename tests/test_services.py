"""
Tests for services.olog - the Flask endpoints.
"""

import io

import pytest

ALICE = {"REMOTE_USER": "alice"}


@pytest.fixture
def operations(client):
    resp = client.put("/olog/ws/logbooks/operations", environ_base=ALICE)
    assert resp.status_code == 200
    return resp.get_json()["value"]


@pytest.fixture
def entry(client, operations):
    resp = client.put("/olog/ws/logs", json={"body": "Beam is back", "logbooks": [{"name": "operations"}]}, environ_base=ALICE)
    assert resp.status_code == 200
    return resp.get_json()["value"]


class TestLogbooks:
    def test_create(self, operations, producer):
        assert operations["name"] == "operations"
        assert operations["owner"] == "alice"
        assert operations["state"] == "Active"
        assert producer.sent[0][0] == "logbooks"
        assert producer.sent[0][1]["CRUD"] == "Create"

    def test_create_needs_principal(self, client):
        assert client.put("/olog/ws/logbooks/operations").status_code == 401

    def test_basic_auth_principal(self, client):
        resp = client.put("/olog/ws/tags/beam", auth=("bob", "secret"))
        assert resp.status_code == 200
        assert resp.get_json()["value"]["owner"] == "bob"

    def test_create_twice_conflicts(self, client, operations):
        resp = client.put("/olog/ws/logbooks/operations", environ_base=ALICE)
        assert resp.status_code == 409
        assert resp.get_json()["success"] is False

    def test_name_mismatch(self, client):
        resp = client.put("/olog/ws/logbooks/operations", json={"name": "controls"}, environ_base=ALICE)
        assert resp.status_code == 400

    def test_soft_delete(self, client, operations):
        first = client.delete("/olog/ws/logbooks/operations", environ_base=ALICE).get_json()["value"]
        second = client.delete("/olog/ws/logbooks/operations", environ_base=ALICE).get_json()["value"]
        assert first["state"] == second["state"] == "Inactive"
        assert [x["name"] for x in client.get("/olog/ws/logbooks").get_json()["value"]] == ["operations"]
        assert client.get("/olog/ws/logbooks/active").get_json()["value"] == []

    def test_body_has_to_be_an_object(self, client):
        resp = client.put("/olog/ws/logbooks/ops", json=["x"], environ_base=ALICE)
        assert resp.status_code == 400
        assert client.get("/olog/ws/logbooks/ops").status_code == 404

    def test_delete_missing(self, client):
        assert client.delete("/olog/ws/tags/nosuchtag", environ_base=ALICE).status_code == 404

    def test_find(self, client, operations):
        assert client.get("/olog/ws/logbooks/operations").get_json()["value"]["name"] == "operations"
        assert client.get("/olog/ws/logbooks/nosuchlogbook").status_code == 404


class TestLogs:
    def test_create(self, entry, producer):
        assert entry["owner"] == "alice"
        assert entry["id"]
        assert producer.sent[-1][0] == "logs"

    def test_create_with_markup(self, client, operations):
        resp = client.put("/olog/ws/logs?markup=commonmark", json={"body": "**bold**", "logbooks": [{"name": "operations"}]}, environ_base=ALICE)
        assert "<strong>bold</strong>" in resp.get_json()["value"]["body"]

    def test_create_unknown_logbook(self, client, operations):
        resp = client.put("/olog/ws/logs", json={"body": "x", "logbooks": [{"name": "nosuchlogbook"}]}, environ_base=ALICE)
        assert resp.status_code == 400
        assert "invalid logbook name" in resp.get_json()["errormsg"]
        assert client.get("/olog/ws/logs").get_json()["value"] == []

    def test_create_invalid_document(self, client, operations):
        resp = client.put("/olog/ws/logs", json={"body": "x", "logbooks": [{"owner": "alice"}]}, environ_base=ALICE)
        assert resp.status_code == 400

    def test_get(self, client, entry):
        assert client.get("/olog/ws/logs/" + entry["id"]).get_json()["value"]["body"] == "Beam is back"
        assert client.get("/olog/ws/logs/5ff8a6b2c2a1e4d1f0a0a0a0").status_code == 404

    def test_search(self, client, entry):
        found = client.get("/olog/ws/logs?start=2%20days&owner=alice").get_json()["value"]
        assert [x["id"] for x in found] == [entry["id"]]
        assert client.get("/olog/ws/logs?owner=bob").get_json()["value"] == []

    def test_search_bad_time(self, client, entry):
        resp = client.get("/olog/ws/logs?start=sometime")
        assert resp.status_code == 400

    def test_search_time_out_of_range(self, client, entry):
        resp = client.get("/olog/ws/logs?start=1000000%20days")
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False


class TestAttachments:
    def test_upload_and_fetch(self, client, entry):
        resp = client.post("/olog/ws/logs/attachments/" + entry["id"],
            data={"file": (io.BytesIO(b"png bytes"), "plot.png", "image/png"), "filename": "profile.png"},
            content_type="multipart/form-data", environ_base=ALICE)
        assert resp.status_code == 200
        attachment = resp.get_json()["value"]["attachments"][0]
        assert attachment["filename"] == "profile.png"
        assert attachment["description"] == "image/png"

        fetched = client.get("/olog/ws/logs/attachments/%s/profile.png" % entry["id"])
        assert fetched.status_code == 200
        assert fetched.data == b"png bytes"
        assert fetched.mimetype == "image/png"

    def test_upload_to_missing_log(self, client):
        resp = client.post("/olog/ws/logs/attachments/5ff8a6b2c2a1e4d1f0a0a0a0",
            data={"file": (io.BytesIO(b"x"), "plot.png")}, content_type="multipart/form-data", environ_base=ALICE)
        assert resp.status_code == 404

    def test_upload_without_file(self, client, entry):
        resp = client.post("/olog/ws/logs/attachments/" + entry["id"], data={"filename": "x.png"},
            content_type="multipart/form-data", environ_base=ALICE)
        assert resp.status_code == 400

    def test_multi_upload_and_ambiguity(self, client, entry):
        resp = client.post("/olog/ws/logs/attachments-multi/" + entry["id"],
            data={"file": [(io.BytesIO(b"one"), "plot.png"), (io.BytesIO(b"two"), "plot.png"), (io.BytesIO(b"three"), "notes.txt")]},
            content_type="multipart/form-data", environ_base=ALICE)
        assert resp.status_code == 200
        assert [x["filename"] for x in resp.get_json()["value"]["attachments"]] == ["plot.png", "plot.png", "notes.txt"]

        assert client.get("/olog/ws/logs/attachments/%s/plot.png" % entry["id"]).status_code == 204
        assert client.get("/olog/ws/logs/attachments/%s/notes.txt" % entry["id"]).data == b"three"
