"""Tests for worksummary.api.app — FastAPI routes, service and scheduler mocked."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from worksummary.api.app import build_app
from worksummary.core.summary_service import TestSendResult
from worksummary.data.models import SummaryKind

HEADERS = {"X-API-Key": "fake-api-key-for-tests", "X-User-Id": "7"}


@pytest.fixture
def service():
    mock = MagicMock()
    mock.send_test_summary = AsyncMock(
        return_value=TestSendResult(True, "Test daily summary email sent to ana@example.com"),
    )
    return mock


@pytest.fixture
def scheduler():
    mock = MagicMock()
    mock.running = False
    return mock


@pytest.fixture
def client(service, scheduler):
    return TestClient(build_app(service=service, scheduler=scheduler))


class TestAuth:
    def test_missing_api_key(self, client, service):
        resp = client.post("/api/user/work-summary/test-daily", headers={"X-User-Id": "7"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid API key"
        service.send_test_summary.assert_not_awaited()

    def test_wrong_api_key(self, client):
        resp = client.post(
            "/api/user/work-summary/test-weekly",
            headers={"X-API-Key": "nope", "X-User-Id": "7"},
        )
        assert resp.status_code == 401

    def test_missing_user(self, client):
        resp = client.post(
            "/api/user/work-summary/test-daily",
            headers={"X-API-Key": "fake-api-key-for-tests"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Not authenticated"


class TestTestSendRoutes:
    def test_daily_success(self, client, service):
        resp = client.post("/api/user/work-summary/test-daily", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "Test daily summary email sent to ana@example.com",
        }
        service.send_test_summary.assert_awaited_once_with(7, SummaryKind.DAILY)

    def test_weekly_routes_to_weekly(self, client, service):
        client.post("/api/user/work-summary/test-weekly", headers=HEADERS)
        service.send_test_summary.assert_awaited_once_with(7, SummaryKind.WEEKLY)

    def test_failure_is_400(self, client, service):
        service.send_test_summary.return_value = TestSendResult(
            False, "Failed to send email. Check SMTP configuration.",
        )
        resp = client.post("/api/user/work-summary/test-daily", headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json()["success"] is False


class TestLifecycle:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "scheduler_running": False}

    def test_lifespan_starts_and_stops_scheduler(self, service, scheduler):
        with TestClient(build_app(service=service, scheduler=scheduler)):
            scheduler.start.assert_called_once()
            scheduler.stop.assert_not_called()
        scheduler.stop.assert_called_once()

    def test_client_without_context_does_not_start_scheduler(self, client, scheduler):
        client.get("/health")
        scheduler.start.assert_not_called()
