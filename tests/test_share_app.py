"""
HTTP surface of the catalog and share-link service.
"""

import json

import pytest
from fastapi.testclient import TestClient

from geocat_svc.config import CatalogConfig, Config, FeedbackConfig, ShareConfig
from geocat_svc.share_app import create_app

from conftest import BASE_CATALOG

APP_URL = "https://map.example.com/"
FEEDBACK_URL = "https://map.example.com/feedback"


@pytest.fixture
def client(tmp_path, fake_http):
    catalog_path = tmp_path / "catalog.json"
    catalog_path.write_text(json.dumps(BASE_CATALOG))
    config = Config(
        catalog=CatalogConfig(definition_file=str(catalog_path)),
        share=ShareConfig(app_url=APP_URL),
        feedback=FeedbackConfig(url=FEEDBACK_URL),
    )
    app = create_app(config=config, client=fake_http.client())
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Catalog
# ============================================================================

class TestCatalogEndpoints:

    def test_summary(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["members"] == 7
        assert response.json()["canShorten"] is False

    def test_tree(self, client):
        items = client.get("/catalog").json()["items"]

        assert [i["id"] for i in items] == ["g", "a"]
        assert [i["id"] for i in items[0]["items"]] == ["g/i", "g/j"]

    def test_enable_nested_member(self, client):
        response = client.post("/catalog/g/i/enable")

        assert response.status_code == 200
        assert response.json()["isEnabled"] is True
        assert client.get("/").json()["enabled"] == ["g/i"]

        client.post("/catalog/g/i/disable")
        assert client.get("/catalog/g/i").json()["isEnabled"] is False

    def test_open_loads_group(self, client):
        body = client.post("/catalog/a/open").json()

        assert body["isOpen"] is True
        assert body["loadState"] == "loaded"

    def test_unknown_member_and_action(self, client):
        assert client.get("/catalog/nope").status_code == 404
        assert client.post("/catalog/g/i/explode").status_code == 404
        assert client.post("/catalog/g/enable").status_code == 404

    def test_add_and_remove_members(self, client):
        response = client.post("/catalog", json={
            "members": [{"name": "My CSV", "type": "csv", "url": "https://example.com/my.csv"}],
            "parent": "g",
        })

        added = response.json()["added"]
        assert added[0]["id"] == "g/My CSV"
        assert added[0]["isUserSupplied"] is True

        assert client.delete("/catalog/g/My CSV").status_code == 200
        assert client.get("/catalog/g/My CSV").status_code == 404


# ============================================================================
# Share
# ============================================================================

class TestShareEndpoints:

    def test_document_and_link(self, client):
        client.post("/catalog/g/i/enable")

        document = client.get("/share/document").json()["document"]
        link = client.get("/share/link").json()["url"]

        assert document["version"] == "0.0.05"
        assert {"sharedCatalogMembers": {"g/i": {
            "isEnabled": True, "parents": ["g"], "isShown": True, "opacity": 0.8,
        }}} in document["initSources"]
        assert link.startswith(f"{APP_URL}#start=")

    def test_short_link_falls_back_without_backend(self, client):
        assert "#start=" in client.get("/share/link", params={"short": "true"}).json()["url"]

    def test_open_link(self, client):
        client.post("/catalog/g/i/enable")
        link = client.get("/share/link").json()["url"]
        client.post("/catalog/g/i/disable")

        response = client.post("/share/open", json={"url": link})

        assert response.status_code == 200
        assert client.get("/catalog/g/i").json()["isEnabled"] is True

    def test_open_garbage_link(self, client):
        response = client.post("/share/open", json={"url": APP_URL})

        assert response.status_code == 400
        assert response.json()["title"] == "Invalid share data"

    def test_store_and_fetch(self, client):
        document = {"version": "0.0.05", "initSources": [{"baseMapName": "Voyager"}]}

        token = client.post("/share", json=document).json()["id"]

        assert client.get(f"/share/{token}").json() == document
        assert client.get("/share/unknown").status_code == 404
        assert client.post("/share", json={"initSources": []}).status_code == 400


# ============================================================================
# Feedback
# ============================================================================

class TestFeedbackEndpoint:

    def test_feedback_sent(self, client, fake_http):
        fake_http.add(FEEDBACK_URL, {"result": "SUCCESS"}, method="POST")

        response = client.post("/feedback", json={"comment": "Great map", "sendShareUrl": True})

        assert response.status_code == 200
        assert response.json() == {"title": "Thank you for your feedback!"}
        sent = json.loads(fake_http.calls(FEEDBACK_URL)[0].content)
        assert sent["shareLink"].startswith(f"{APP_URL}#start=")

    def test_feedback_failure(self, client, fake_http):
        fake_http.add(FEEDBACK_URL, {"result": "ERROR"}, method="POST")

        response = client.post("/feedback", json={"comment": "Great map"})

        assert response.status_code == 502
        assert "support@example.com" in response.json()["message"]
