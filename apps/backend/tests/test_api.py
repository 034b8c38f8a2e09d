"""HTTP API tests using FastAPI's TestClient."""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import FakeRunner, Script, SleepRecorder
from mediagrab.config import Settings
from mediagrab.jobs.manager import JobManager
from mediagrab.main import create_app
from mediagrab.services.runner import ProcessResult

URL = "https://www.youtube.com/watch?v=abc123"


def _client(settings: Settings, runner) -> TestClient:
    manager = JobManager(settings, runner=runner, sleep=SleepRecorder(), rng=random.Random(0))
    return TestClient(create_app(settings, job_manager=manager))


def _ip(n: int) -> dict[str, str]:
    return {"X-Forwarded-For": f"203.0.113.{n}"}


def _wait_terminal(client: TestClient, job_id: str) -> dict:
    for _ in range(500):
        body = client.get(f"/api/v1/jobs/{job_id}").json()
        if body["status"] in ("completed", "failed"):
            return body
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} did not finish")


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    with _client(settings, FakeRunner()) as c:
        yield c


class TestCreateJob:
    def test_create_and_complete(self, client: TestClient) -> None:
        r = client.post("/api/v1/jobs", json={"url": URL, "formats": ["video", "audio"]}, headers=_ip(1))
        assert r.status_code == 202
        body = r.json()
        assert body["status"] == "queued"
        assert body["formats"] == ["video", "audio"]

        status = _wait_terminal(client, body["job_id"])
        assert status["status"] == "completed"
        assert status["progress"] == 100
        assert status["download_count"] == 2
        assert status["files"]["video"].startswith("/files/")
        assert "error_type" not in status

    def test_missing_url(self, client: TestClient) -> None:
        r = client.post("/api/v1/jobs", json={"formats": ["video"]}, headers=_ip(2))
        assert r.status_code == 400
        assert r.json()["error"] == "missing url"
        assert r.json()["error_type"] == "invalid_input"

    def test_invalid_url_shape(self, client: TestClient) -> None:
        r = client.post("/api/v1/jobs", json={"url": "https://example.com/v"}, headers=_ip(3))
        assert r.status_code == 400
        assert r.json()["error"] == "invalid url shape"

    @pytest.mark.parametrize("formats", [[], ["gif"], "video", {"a": 1}])
    def test_invalid_formats(self, client: TestClient, formats: object) -> None:
        r = client.post("/api/v1/jobs", json={"url": URL, "formats": formats}, headers=_ip(4))
        assert r.status_code == 400
        assert r.json()["error"] == "invalid formats"

    def test_rate_limited(self, client: TestClient) -> None:
        first = client.post("/api/v1/jobs", json={"url": URL, "formats": ["video"]}, headers=_ip(5))
        second = client.post("/api/v1/jobs", json={"url": URL, "formats": ["video"]}, headers=_ip(5))
        assert first.status_code == 202
        assert second.status_code == 429
        assert second.json()["error_type"] == "rate_limited"
        assert second.json()["retry_after"] > 0


def test_admission_rejected(settings: Settings) -> None:
    settings.max_concurrent_jobs = 1

    class Slow:
        async def run(self, args, timeout) -> ProcessResult:
            await asyncio.sleep(3600)
            raise AssertionError("unreachable")

    with _client(settings, Slow()) as client:
        first = client.post("/api/v1/jobs", json={"url": URL}, headers=_ip(10))
        second = client.post("/api/v1/jobs", json={"url": URL}, headers=_ip(11))

        assert first.status_code == 202
        assert second.status_code == 429
        body = second.json()
        assert body["error_type"] == "admission_rejected"
        assert body["max"] == 1
        assert client.get("/api/v1/jobs").json()["statistics"]["total"] == 1


def test_failed_job_has_classification_and_hint(settings: Settings) -> None:
    runner = FakeRunner(default=Script(returncode=1, stderr="Sign in to confirm you're not a bot"))
    with _client(settings, runner) as client:
        job_id = client.post("/api/v1/jobs", json={"url": URL, "formats": ["video"]}, headers=_ip(20)).json()["job_id"]
        status = _wait_terminal(client, job_id)

        assert status["status"] == "failed"
        assert status["error_type"] == "bot_detection"
        assert "proxy" in status["suggestion"].lower()
        assert "files" not in status

        health = client.get("/health").json()
        assert health["failed_jobs"] == 1
        assert health["bot_detection_count"] == 1
        assert health["by_error_type"] == {"bot_detection": 1}


class TestQueries:
    def test_unknown_job(self, client: TestClient) -> None:
        r = client.get("/api/v1/jobs/does-not-exist")
        assert r.status_code == 404

    def test_listing_and_pagination(self, client: TestClient) -> None:
        ids = [
            client.post("/api/v1/jobs", json={"url": URL, "formats": ["audio"]}, headers=_ip(30 + i)).json()["job_id"]
            for i in range(2)
        ]
        for job_id in ids:
            _wait_terminal(client, job_id)

        body = client.get("/api/v1/jobs", params={"limit": 1}).json()
        assert len(body["jobs"]) == 1
        assert body["jobs"][0]["id"] == ids[-1]
        assert body["jobs"][0]["file_count"] == 1
        assert body["pagination"] == {"limit": 1, "offset": 0, "total": 2, "has_more": True}
        assert body["statistics"]["completed"] == 2
        assert body["statistics"]["success_rate"] == 100

    def test_bad_pagination_is_a_client_error(self, client: TestClient) -> None:
        assert client.get("/api/v1/jobs", params={"limit": 0}).status_code == 422

    def test_health(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["active_jobs"] == 0
        assert body["max_concurrent"] == 2
        assert body["proxy_enabled"] is False
        assert body["success_rate"] == "N/A"


class TestFiles:
    def test_download_produced_file(self, client: TestClient) -> None:
        job_id = client.post("/api/v1/jobs", json={"url": URL, "formats": ["audio"]}, headers=_ip(40)).json()["job_id"]
        ref = _wait_terminal(client, job_id)["files"]["audio"]

        r = client.get(ref)
        assert r.status_code == 200
        assert r.headers["content-type"] == "audio/mpeg"
        assert "attachment" in r.headers["content-disposition"]
        assert r.content == b"media"

    def test_missing_file(self, client: TestClient) -> None:
        assert client.get("/files/nothing.mp4").status_code == 404

    @pytest.mark.parametrize("name", ["a..b.mp4", "a%5Cb.mp4"])
    def test_traversal_is_rejected(self, client: TestClient, name: str) -> None:
        assert client.get(f"/files/{name}").status_code == 400


class TestMiddleware:
    def test_cors_preflight(self, client: TestClient) -> None:
        r = client.options(
            "/api/v1/jobs",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert r.status_code == 200
        assert r.headers["access-control-allow-origin"] in ("*", "http://localhost:5173")

    def test_cors_header_on_simple_request(self, client: TestClient) -> None:
        r = client.get("/health", headers={"Origin": "http://example.org"})
        assert r.headers["access-control-allow-origin"] in ("*", "http://example.org")

    def test_api_requests_are_limited_per_client(self, settings: Settings) -> None:
        settings.api_rate_limit = "3/minute"
        with _client(settings, FakeRunner()) as client:
            for _ in range(3):
                assert client.get("/api/v1/jobs", headers=_ip(50)).status_code == 200

            r = client.get("/api/v1/jobs", headers=_ip(50))
            assert r.status_code == 429
            assert r.json()["error_type"] == "rate_limited"

            # other clients and non-API routes are unaffected
            assert client.get("/api/v1/jobs", headers=_ip(51)).status_code == 200
            assert client.get("/health", headers=_ip(50)).status_code == 200

    def test_api_limit_can_be_disabled(self, settings: Settings) -> None:
        settings.api_rate_limit = "1/minute"
        settings.api_rate_limit_enabled = False
        with _client(settings, FakeRunner()) as client:
            for _ in range(3):
                assert client.get("/api/v1/jobs", headers=_ip(52)).status_code == 200
