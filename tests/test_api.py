"""
HTTP API tests via FastAPI TestClient.

Repositories are swapped for in-memory ones through dependency overrides;
the lifespan (scheduler) is not started.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import make_record

from ga4report.api.report_routes import get_report_runner
from ga4report.main import app
from ga4report.repositories.consolidated_store import get_store_repository
from ga4report.repositories.url_config import get_url_repository
from ga4report.storage import InMemoryStorage


@pytest.fixture
def client(store_repo, url_repo):
    app.dependency_overrides[get_store_repository] = lambda: store_repo
    app.dependency_overrides[get_url_repository] = lambda: url_repo
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def populated(store_repo, write_csv):
    write_csv(
        "report_2025-10-07_00-00.csv",
        [
            make_record("/a/", views=10, sessions=5, data_found=True),
            make_record("/radar/b/", views=40, sessions=30, data_found=True),
        ],
    )
    write_csv(
        "report_2025-10-07_06-00.csv",
        [make_record("/a/", views=0, sessions=0, data_found=False)],
    )
    return store_repo.consolidate_all()


# ────────────────────────────────────────────
# SYSTEM
# ────────────────────────────────────────────


class TestSystem:
    def test_root_lists_endpoints(self, client):
        r = client.get("/")
        assert r.status_code == 200
        body = r.json()
        assert "GET /api/health" in body["endpoints"]
        assert "nextExecution" in body["scheduler"]

    def test_unknown_route(self, client):
        r = client.get("/api/nope")
        assert r.status_code == 404
        assert r.json()["error"] == "Endpoint not found"
        assert "GET /api/stats" in r.json()["available"]

    def test_corrupt_store_is_500(self, client, store_storage):
        store_storage.write({"data": {"x": "not an execution"}})
        r = client.get("/api/stats")
        assert r.status_code == 500
        assert set(r.json()) == {"error", "message"}


# ────────────────────────────────────────────
# READ ENDPOINTS
# ────────────────────────────────────────────


class TestReadEndpoints:
    @pytest.mark.parametrize(
        "path",
        ["/api/health", "/api/stats", "/api/executions", "/api/urls", "/api/raw",
         "/api/execution/x", "/api/url/a"],
    )
    def test_missing_store_is_404(self, client, path):
        r = client.get(path)
        assert r.status_code == 404
        body = r.json()
        assert body["file"] == "memory://consolidated-reports.json"
        assert "consolidate" in body["message"]

    def test_health(self, client, populated):
        r = client.get("/api/health")
        assert r.status_code == 200
        data_file = r.json()["dataFile"]
        assert data_file["executions"] == 2
        assert data_file["urls"] == 2
        assert data_file["size"].endswith(" KB")

    def test_stats(self, client, populated):
        body = client.get("/api/stats").json()
        assert body["totalExecutions"] == 2
        assert body["distinctUrlCount"] == 2
        assert body["period"] == {"from": "2025-10-07", "to": "2025-10-07"}

    def test_executions_sorted_ascending(self, client, populated):
        body = client.get("/api/executions").json()
        assert body["total"] == 2
        timestamps = [e["timestamp"] for e in body["executions"]]
        assert timestamps == sorted(timestamps)
        assert body["executions"][0]["id"] == "2025-10-07_00-00"
        assert body["executions"][0]["urlsProcessed"] == 2

    def test_urls_sorted_by_views(self, client, populated):
        body = client.get("/api/urls").json()
        assert [u["url"] for u in body["urls"]] == ["/radar/b/", "/a/"]
        a = body["urls"][1]
        assert a["appearances"] == 2
        assert a["totalVistas"] == 10
        assert a["totalSesiones"] == 5
        assert a["tasaExito"] == 50.0

    def test_execution_detail(self, client, populated):
        body = client.get("/api/execution/2025-10-07_00-00").json()
        assert body["id"] == "2025-10-07_00-00"
        assert body["summary"]["totalViews"] == 50
        assert set(body["urls"]) == {"/a/", "/radar/b/"}

    def test_unknown_execution(self, client, populated):
        r = client.get("/api/execution/does-not-exist")
        assert r.status_code == 404
        assert r.json()["id"] == "does-not-exist"
        assert sorted(r.json()["available"]) == ["2025-10-07_00-00", "2025-10-07_06-00"]

    def test_url_detail_with_nested_path(self, client, populated):
        body = client.get("/api/url/radar/b").json()
        assert body["url"] == "/radar/b/"
        assert body["searchTerm"] == "radar/b"
        assert body["totalExecutions"] == 1

    def test_unknown_url(self, client, populated):
        r = client.get("/api/url/zzz")
        assert r.status_code == 404
        assert r.json()["searchTerm"] == "zzz"
        assert r.json()["availableUrls"] == ["/a/", "/radar/b/"]

    def test_raw_is_verbatim(self, client, populated, store_storage):
        assert client.get("/api/raw").json() == store_storage.read()


# ────────────────────────────────────────────
# TRIGGER
# ────────────────────────────────────────────


class TestTriggerReport:
    def test_success(self, client):
        app.dependency_overrides[get_report_runner] = lambda: (
            lambda: {"success": True, "duration": 1.2, "logFile": "logs/x.log", "result": {}}
        )
        r = client.post("/api/trigger-report")
        assert r.status_code == 200
        assert r.json()["success"] is True
        assert r.json()["message"] == "Report executed"

    def test_failure_is_500(self, client):
        app.dependency_overrides[get_report_runner] = lambda: (
            lambda: {"success": False, "duration": 0.1, "logFile": "logs/x.log", "error": "boom"}
        )
        r = client.post("/api/trigger-report")
        assert r.status_code == 500
        assert r.json()["message"] == "boom"


# ────────────────────────────────────────────
# URL CONFIG
# ────────────────────────────────────────────


class TestConfigUrls:
    def test_list_creates_default(self, client):
        body = client.get("/api/config/urls").json()
        assert body["success"] is True
        assert body["urls"] == []
        assert body["total"] == 0

    def test_add_normalizes_and_rejects_duplicate(self, client):
        r = client.post("/api/config/urls", json={"url": "foo"})
        assert r.status_code == 201
        assert r.json()["url"] == "/foo/"

        r = client.post("/api/config/urls", json={"url": "foo"})
        assert r.status_code == 400
        assert "already exists" in r.json()["error"]
        assert client.get("/api/config/urls").json()["urls"] == ["/foo/"]

    def test_add_requires_url(self, client):
        assert client.post("/api/config/urls", json={}).status_code == 400
        assert client.post("/api/config/urls").status_code == 400

    def test_replace(self, client):
        r = client.put("/api/config/urls", json={"urls": ["a", "b"]})
        assert r.status_code == 200
        assert client.get("/api/config/urls").json()["urls"] == ["/a/", "/b/"]

    def test_replace_duplicates_rejected(self, client):
        assert client.put("/api/config/urls", json={"urls": ["a", "/a/"]}).status_code == 400

    def test_replace_requires_list(self, client):
        assert client.put("/api/config/urls", json={"urls": "/a/"}).status_code == 400

    def test_delete_by_url_and_index(self, client):
        client.put("/api/config/urls", json={"urls": ["/a/", "/b/", "/c/"]})
        r = client.request("DELETE", "/api/config/urls", json={"url": "b"})
        assert r.status_code == 200
        r = client.request("DELETE", "/api/config/urls", json={"url": 1})
        assert r.json()["url"] == "/a/"
        assert client.get("/api/config/urls").json()["urls"] == ["/c/"]

    def test_delete_unknown_is_404(self, client):
        r = client.request("DELETE", "/api/config/urls", json={"url": "/missing/"})
        assert r.status_code == 404

    def test_delete_requires_url(self, client):
        assert client.request("DELETE", "/api/config/urls", json={}).status_code == 400
