"""Tests for the FastAPI merge API.

WHY: Validates the merge endpoints end to end: job creation, polling,
fetching the merged vocabulary, saving, deleting, and the error codes a
client relies on to tell bad input from a failed write.

HOW: Each test exercises one endpoint behavior through the FastAPI
TestClient. Jobs that must actually merge run on the app's worker pool;
the test waits for them with job_store.wait(). Tests that only need a job
in a given state use the `client` fixture, which does not start merges,
and set the state directly through the store.

RULES:
- All tests use the FastAPI TestClient (synchronous)
- Vocabulary files live under tmp_path; nothing touches the home directory
- The job store is cleared before and after each test
- Tests cover: happy paths, 404 not found, 409 conflict, 400/422 bad
  request, 500 failed save
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from vocab_merger import __version__, config
from vocab_merger.server.app import app, job_store, require_loopback
from vocab_merger.server.jobs import JobStatus


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_job_store():
    """Clear all jobs before each test to ensure isolation."""
    job_store._jobs.clear()
    yield
    job_store._jobs.clear()


@pytest.fixture
def client():
    """TestClient whose merge jobs stay pending until a test moves them."""
    with patch("vocab_merger.server.app._start_merge", new=lambda job_id: None):
        yield TestClient(app)


@pytest.fixture
def live_client():
    """TestClient whose merge jobs run on the worker pool."""
    return TestClient(app)


def _merge(live_client, sources):
    """Submit a merge and wait for it to settle. Returns the job ID."""
    resp = live_client.post("/merges", json={"sources": [str(s) for s in sources]})
    assert resp.status_code == 201
    job_id = resp.json()["id"]
    job_store.wait(job_id, timeout=10)
    return job_id


# ---------------------------------------------------------------------------
# POST /merges
# ---------------------------------------------------------------------------


class TestCreateMerge:
    """Tests for POST /merges."""

    def test_submit_returns_201(self, client, scenario_paths):
        resp = client.post("/merges", json={"sources": [str(p) for p in scenario_paths]})
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["sources"] == [str(p.resolve()) for p in scenario_paths]
        assert job_store.get_job(body["id"]) is not None

    def test_duplicate_sources_collapsed(self, client, scenario_paths):
        sources = [str(scenario_paths[0])] * 2 + [str(scenario_paths[1])]
        resp = client.post("/merges", json={"sources": sources})
        assert len(resp.json()["sources"]) == 2

    def test_too_many_sources(self, client, tmp_path):
        sources = [str(tmp_path / "v{}.json".format(i)) for i in range(config.MAX_SOURCE_FILES + 1)]
        resp = client.post("/merges", json={"sources": sources})
        assert resp.status_code == 400
        assert "at most {}".format(config.MAX_SOURCE_FILES) in resp.json()["detail"]
        assert job_store.list_jobs() == []

    def test_empty_sources(self, client):
        resp = client.post("/merges", json={"sources": []})
        assert resp.status_code == 422

    def test_missing_body(self, client):
        resp = client.post("/merges", json={})
        assert resp.status_code == 422

    def test_too_many_jobs(self, client, scenario_paths, monkeypatch):
        monkeypatch.setattr(job_store, "max_jobs", 1)
        client.post("/merges", json={"sources": [str(scenario_paths[0])]})
        resp = client.post("/merges", json={"sources": [str(scenario_paths[1])]})
        assert resp.status_code == 429


# ---------------------------------------------------------------------------
# GET /merges and /merges/{id}
# ---------------------------------------------------------------------------


class TestGetMerge:
    """Tests for GET /merges and GET /merges/{id}."""

    def test_pending_job(self, client, scenario_paths):
        job_id = client.post("/merges", json={"sources": [str(scenario_paths[0])]}).json()["id"]
        resp = client.get("/merges/{}".format(job_id))
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "pending"
        assert body["progress"] == {"file": "", "word_count": 0}
        assert body["error"] is None
        assert body["saved_path"] is None

    def test_progress_is_reported(self, client, scenario_paths):
        job_id = client.post("/merges", json={"sources": [str(scenario_paths[0])]}).json()["id"]
        job_store.update_job(
            job_id, status=JobStatus.MERGING, progress={"file": "A", "word_count": 42}
        )
        body = client.get("/merges/{}".format(job_id)).json()
        assert body["status"] == "merging"
        assert body["progress"] == {"file": "A", "word_count": 42}

    def test_merged_job(self, live_client, scenario_paths):
        job_id = _merge(live_client, scenario_paths)
        body = live_client.get("/merges/{}".format(job_id)).json()
        assert body["status"] == "merged"
        assert body["progress"]["word_count"] == 3

    def test_failed_job(self, live_client, scenario_paths, tmp_path):
        job_id = _merge(live_client, [scenario_paths[0], tmp_path / "missing.json"])
        body = live_client.get("/merges/{}".format(job_id)).json()
        assert body["status"] == "failed"
        assert "missing.json" in body["error"]

    def test_nonexistent_job(self, client):
        resp = client.get("/merges/nonexistent")
        assert resp.status_code == 404
        assert "detail" in resp.json()

    def test_list(self, client, scenario_paths):
        first = client.post("/merges", json={"sources": [str(scenario_paths[0])]}).json()["id"]
        second = client.post("/merges", json={"sources": [str(scenario_paths[1])]}).json()["id"]
        ids = [j["id"] for j in client.get("/merges").json()]
        assert set(ids) == {first, second}


# ---------------------------------------------------------------------------
# GET /merges/{id}/vocabulary
# ---------------------------------------------------------------------------


class TestGetVocabulary:
    """Tests for GET /merges/{id}/vocabulary."""

    def test_merged_vocabulary(self, live_client, scenario_paths):
        job_id = _merge(live_client, scenario_paths)
        resp = live_client.get("/merges/{}/vocabulary".format(job_id))
        assert resp.status_code == 200
        body = resp.json()
        assert body["size"] == 3
        assert body["type"] == "DOCUMENT"
        assert [w["value"] for w in body["wordList"]] == ["run", "walk", "jump"]
        run = body["wordList"][0]
        assert run["captions"] == []
        assert [c["subtitlesName"] for c in run["externalCaptions"]] == ["A", "A", "B"]

    def test_not_merged(self, client, scenario_paths):
        job_id = client.post("/merges", json={"sources": [str(scenario_paths[0])]}).json()["id"]
        resp = client.get("/merges/{}/vocabulary".format(job_id))
        assert resp.status_code == 409

    def test_nonexistent_job(self, client):
        assert client.get("/merges/nonexistent/vocabulary").status_code == 404


# ---------------------------------------------------------------------------
# POST /merges/{id}/save
# ---------------------------------------------------------------------------


class TestSaveMerge:
    """Tests for POST /merges/{id}/save."""

    def test_save(self, live_client, scenario_paths, tmp_path):
        job_id = _merge(live_client, scenario_paths)
        dest = tmp_path / "Season 1.json"

        resp = live_client.post("/merges/{}/save".format(job_id), json={"path": str(dest)})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "saved"
        assert body["saved_path"] == str(dest)
        data = json.loads(dest.read_text(encoding="utf-8"))
        assert data["name"] == "Season 1"
        assert data["size"] == 3

    def test_vocabulary_gone_after_save(self, live_client, scenario_paths, tmp_path):
        job_id = _merge(live_client, scenario_paths)
        live_client.post("/merges/{}/save".format(job_id), json={"path": str(tmp_path / "m.json")})
        assert live_client.get("/merges/{}/vocabulary".format(job_id)).status_code == 409

    def test_failed_save_can_be_retried(self, live_client, scenario_paths, tmp_path):
        job_id = _merge(live_client, scenario_paths)

        resp = live_client.post(
            "/merges/{}/save".format(job_id),
            json={"path": str(tmp_path / "nope" / "m.json")},
        )
        assert resp.status_code == 500
        body = live_client.get("/merges/{}".format(job_id)).json()
        assert body["status"] == "merged"
        assert body["error"]

        resp = live_client.post(
            "/merges/{}/save".format(job_id), json={"path": str(tmp_path / "m.json")}
        )
        assert resp.status_code == 200
        assert resp.json()["error"] is None

    def test_not_merged(self, client, scenario_paths, tmp_path):
        job_id = client.post("/merges", json={"sources": [str(scenario_paths[0])]}).json()["id"]
        resp = client.post("/merges/{}/save".format(job_id), json={"path": str(tmp_path / "m.json")})
        assert resp.status_code == 409

    def test_nonexistent_job(self, client, tmp_path):
        resp = client.post("/merges/nonexistent/save", json={"path": str(tmp_path / "m.json")})
        assert resp.status_code == 404

    def test_empty_path(self, client, scenario_paths):
        job_id = client.post("/merges", json={"sources": [str(scenario_paths[0])]}).json()["id"]
        resp = client.post("/merges/{}/save".format(job_id), json={"path": ""})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# DELETE /merges/{id}
# ---------------------------------------------------------------------------


class TestDeleteMerge:
    """Tests for DELETE /merges/{id}."""

    def test_delete_job(self, client, scenario_paths):
        job_id = client.post("/merges", json={"sources": [str(scenario_paths[0])]}).json()["id"]
        resp = client.delete("/merges/{}".format(job_id))
        assert resp.status_code == 204
        assert job_store.get_job(job_id) is None
        assert client.get("/merges/{}".format(job_id)).status_code == 404

    def test_delete_nonexistent_job(self, client):
        assert client.delete("/merges/nonexistent").status_code == 404


# ---------------------------------------------------------------------------
# GET /health and OpenAPI
# ---------------------------------------------------------------------------


class TestHealthCheck:
    """Tests for GET /health."""

    def test_health_returns_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__}


class TestOpenAPISchema:
    """The generated OpenAPI schema documents every endpoint."""

    def test_all_endpoints_in_schema(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert set(paths) == {
            "/merges",
            "/merges/{job_id}",
            "/merges/{job_id}/vocabulary",
            "/merges/{job_id}/save",
            "/health",
        }

    def test_endpoints_have_summaries(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        for path, methods in paths.items():
            for method, operation in methods.items():
                assert operation.get("summary"), "{} {} has no summary".format(method.upper(), path)


class TestLoopbackOnly:
    """run_api() only serves on loopback addresses."""

    @pytest.mark.parametrize("host", ["127.0.0.1", "::1", "localhost"])
    def test_loopback_allowed(self, host):
        require_loopback(host)

    @pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.20", "example.com"])
    def test_other_hosts_refused(self, host):
        with pytest.raises(ValueError, match="loopback"):
            require_loopback(host)

    def test_default_host_is_loopback(self):
        require_loopback(config.API_HOST)
