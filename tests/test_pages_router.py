"""
Tests for the /pages RPC endpoint.

Run with: pytest tests/test_pages_router.py -v
"""
import json

from fastapi.testclient import TestClient

from conftest import A4_GEOMETRY

from codemaker.main import create_app
from codemaker.routers.pages import wrap_callback
from codemaker.settings import Settings


def _new_page(client, page_type=None) -> str:
    resp = client.get("/pages", params={"new": "true", **A4_GEOMETRY})
    key = resp.json()["pageKey"]
    if page_type is not None:
        client.get("/pages", params={"updatetype": key, "type": page_type})
    return key


class TestDispatch:
    def test_no_query(self, client):
        resp = client.get("/pages")
        assert resp.status_code == 200
        assert resp.json() == {"status": "fail", "reason": "no query specified"}

    def test_create_and_edit(self, client):
        key = _new_page(client)
        details = client.get("/pages", params={"edit": key}).json()
        assert details["status"] == "ok"
        assert details["pageKey"] == key
        for name, value in A4_GEOMETRY.items():
            assert details[name] == value
        assert details["type"] == 0
        assert details["locked"] is False

    def test_edit_unknown(self, client):
        resp = client.get("/pages", params={"edit": "zzzz"})
        assert resp.json() == {"status": "fail", "reason": "pagekey not found"}

    def test_overlong_key_fails_cleanly(self, client):
        resp = client.get("/pages", params={"edit": "ZZZZZZZZZZZZ", "callback": "cb"})
        assert resp.status_code == 200
        assert resp.text == 'cb({"status":"fail","reason":"invalid page key"});'

        resp = client.get("/pages", params={"deletebox": 1, "page": "ZZZZZZZZZZZZ"})
        assert resp.json()["status"] == "fail"

    def test_invalid_geometry(self, client):
        resp = client.get("/pages", params={"new": "true", **A4_GEOMETRY, "width": "wide"})
        assert resp.json()["reason"] == "new/update page attribute invalid or missing"

    def test_first_matching_key_wins(self, client):
        """edit is checked before new."""
        key = _new_page(client)
        resp = client.get("/pages", params={"new": "true", "edit": key})
        assert resp.json()["pageKey"] == key
        assert "width" in resp.json()

    def test_tick_box_round_trip(self, client):
        key = _new_page(client, page_type=1)
        created = client.get(
            "/pages", params={"newbox": "true", "x": 50, "y": 60, "page": key, "tempId": 1}
        ).json()
        assert created["tempId"] == 1
        assert (created["x"], created["y"]) == (50, 60)

        updated = client.get(
            "/pages",
            params={
                "updatebox": created["id"],
                "x": 55,
                "y": 65,
                "description": "Bread",
                "quantity": 2,
                "page": key,
            },
        ).json()
        assert updated == {"status": "ok", "id": created["id"]}

        deleted = client.get("/pages", params={"deletebox": created["id"], "page": key}).json()
        assert deleted == {"status": "ok", "id": created["id"]}

    def test_bad_update_box_id(self, client):
        key = _new_page(client, page_type=1)
        resp = client.get("/pages", params={"updatebox": "x1", "x": 1, "y": 1, "page": key})
        assert resp.json()["reason"] == "new/update tickbox attribute invalid or missing"

    def test_destination(self, client):
        key = _new_page(client, page_type=1)
        resp = client.get("/pages", params={"updatedestination": key, "destination": "a@b.com"})
        assert resp.json() == {"status": "ok", "pageKey": key}
        assert client.get("/pages", params={"edit": key}).json()["destination"] == "a@b.com"


class TestLocking:
    def test_lookup_locks_and_scales(self, client):
        key = _new_page(client, page_type=1)
        client.get("/pages", params={"newbox": "true", "x": 42, "y": 21, "page": key})

        looked_up = client.get("/pages", params={"lookup": key}).json()
        assert looked_up["locked"] is True
        assert (looked_up["tickBoxes"][0]["x"], looked_up["tickBoxes"][0]["y"]) == (200, 100)

        resp = client.get("/pages", params={"newbox": "true", "x": 10, "y": 10, "page": key})
        assert resp.json() == {"status": "fail", "reason": "the page is locked"}

    def test_lookup_of_unset_page_does_not_lock(self, client):
        key = _new_page(client)
        assert client.get("/pages", params={"lookup": key}).json()["locked"] is False
        resp = client.get("/pages", params={"update": key, **A4_GEOMETRY})
        assert resp.json()["status"] == "ok"

    def test_locked_audio_page_accepts_audio(self, client):
        key = _new_page(client, page_type=2)
        client.get("/pages", params={"lookup": key})
        resp = client.get(
            "/pages",
            params={
                "newaudio": "true",
                "left": -10,
                "top": 0,
                "right": 100,
                "bottom": 100,
                "soundCloudId": "12345",
                "pageId": key,
            },
        )
        assert resp.json()["status"] == "ok"

    def test_duplicate_of_locked_page(self, client):
        key = _new_page(client, page_type=1)
        client.get("/pages", params={"newbox": "true", "x": 42, "y": 21, "page": key})
        client.get("/pages", params={"lookup": key})

        copy = client.get("/pages", params={"duplicate": key}).json()
        assert copy["status"] == "ok"
        assert copy["pageKey"] != key
        assert copy["locked"] is False
        assert len(copy["tickBoxes"]) == 1


class TestFailureReasons:
    def test_generic_reason_without_debug(self, tmp_path):
        settings = Settings(db_url=f"sqlite:///{tmp_path / 'quiet.db'}", debug=False)
        app = create_app(settings)
        with TestClient(app) as client:
            resp = client.get("/pages", params={"edit": "zzzz"})
        app.state.storage_adapter.dispose()
        assert resp.json() == {"status": "fail", "reason": "query error"}


class TestJsonp:
    def test_callback_wraps_body(self, client):
        resp = client.get("/pages", params={"callback": "CodeMaker.handle"})
        assert resp.headers["content-type"].startswith("application/javascript")
        assert resp.text == 'CodeMaker.handle({"status":"fail","reason":"no query specified"});'

    def test_success_signal_prefix(self, client):
        resp = client.get(
            "/pages",
            params={"callback": "cb", "success": "CodeMaker.ok", "id": "7"},
        )
        assert resp.text.startswith("CodeMaker.ok(7);cb(")
        body = resp.text[len("CodeMaker.ok(7);cb("):-2]
        assert json.loads(body)["status"] == "fail"

    def test_invalid_callback_ignored(self, client):
        resp = client.get("/pages", params={"callback": "alert(document.cookie)"})
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.json()["status"] == "fail"

    def test_bad_connection_id(self):
        wrapped = wrap_callback("{}", {"callback": "cb", "success": "ok", "id": "x"})
        assert wrapped == "ok(0);cb({});"


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert "X-Request-ID" in resp.headers
