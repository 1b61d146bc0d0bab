"""
Integration tests for the HTTP API.

Requests go through the full FastAPI stack with in-memory storage, a
mocked image-understanding client and a fake camera.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from borderwatch.core.config import get_settings
from borderwatch.core.security import reset_rate_limiter
from borderwatch.infrastructure.ai import InvocationError
from borderwatch.infrastructure.capture import CaptureError

API = "/api/v1"


def upload(image_bytes: bytes) -> dict:
    return {"image": ("frame.png", image_bytes, "image/png")}


class TestHealth:
    """Liveness and readiness probes."""

    def test_health(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, test_client: TestClient):
        response = test_client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "storage_reachable": True,
            "ai_configured": True,
        }

    def test_not_ready_without_key(self, test_client: TestClient, services):
        services.invoker.configured = False

        response = test_client.get("/ready")

        assert response.status_code == 503
        assert response.json()["ai_configured"] is False

    def test_correlation_id_echoed(self, test_client: TestClient):
        response = test_client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestWatchlistApi:
    """Watchlist endpoints."""

    def test_list_empty(self, test_client: TestClient):
        response = test_client.get(f"{API}/watchlist")

        assert response.status_code == 200
        assert response.json() == {"plates": []}

    def test_add_and_list(self, test_client: TestClient):
        response = test_client.post(f"{API}/watchlist", json={"plate": "akh 123b"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "plates": ["AKH123B"]}
        assert test_client.get(f"{API}/watchlist").json()["plates"] == ["AKH123B"]

    def test_add_duplicate(self, test_client: TestClient):
        test_client.post(f"{API}/watchlist", json={"plate": "ab 123"})
        response = test_client.post(f"{API}/watchlist", json={"plate": "AB123"})

        assert response.json()["plates"] == ["AB123"]

    def test_remove(self, test_client: TestClient):
        test_client.post(f"{API}/watchlist", json={"plate": "AKH123B"})

        response = test_client.request("DELETE", f"{API}/watchlist", json={"plate": "akh-123b"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "plates": []}

    @pytest.mark.parametrize("body", [{"plate": ""}, {"plate": "   "}, {}])
    def test_empty_plate_rejected(self, test_client: TestClient, body: dict):
        response = test_client.post(f"{API}/watchlist", json=body)

        assert response.status_code == 400
        assert response.json()["detail"] == "Plate required"

    def test_remove_empty_plate_rejected(self, test_client: TestClient):
        response = test_client.request("DELETE", f"{API}/watchlist", json={"plate": ""})

        assert response.status_code == 400

    def test_other_methods_not_allowed(self, test_client: TestClient):
        assert test_client.put(f"{API}/watchlist", json={"plate": "A1"}).status_code == 405
        assert test_client.patch(f"{API}/watchlist", json={"plate": "A1"}).status_code == 405

    def test_import_csv(self, test_client: TestClient):
        csv_bytes = b"plate\nakh 123b,Toyota\nDANGER1,Ford\n"

        response = test_client.post(
            f"{API}/watchlist/import",
            files={"file": ("suspicious.csv", csv_bytes, "text/csv")},
        )

        assert response.status_code == 200
        assert response.json() == {"imported": 2, "plates": ["AKH123B", "DANGER1"]}


class TestDetectionApi:
    """Detection endpoints."""

    def test_plate_on_watchlist(self, test_client: TestClient, sample_image_bytes: bytes):
        test_client.post(f"{API}/watchlist", json={"plate": "AKH123B"})

        response = test_client.post(f"{API}/detections/plate", files=upload(sample_image_bytes))

        assert response.status_code == 200
        body = response.json()
        assert body["kind"] == "plate"
        assert body["result"]["plate_number"] == "AKH123B"
        assert body["result"]["is_of_interest"] is True
        assert body["alert"]["severity"] == "High"
        assert body["alert"]["type"] == "License Plate Recognition"
        assert body["cached"] is False

    def test_objects_with_conditions(
        self, test_client: TestClient, sample_image_bytes: bytes, services
    ):
        response = test_client.post(
            f"{API}/detections/objects",
            files=upload(sample_image_bytes),
            data={"environmental_conditions": "Night, rain"},
        )

        assert response.status_code == 200
        assert response.json()["alert"]["severity"] == "High"
        assert response.json()["result"]["threat_level"] == "Low"
        _, kwargs = services.invoker.invoke.call_args
        assert kwargs["environmental_conditions"] == "Night, rain"

    def test_threat(self, test_client: TestClient, sample_image_bytes: bytes):
        response = test_client.post(f"{API}/detections/threat", files=upload(sample_image_bytes))

        assert response.status_code == 200
        assert response.json()["alert"]["title"] == "Potential Threat: John Doe"
        assert response.json()["alert"]["severity"] == "Critical"

    def test_invalid_image(self, test_client: TestClient, services):
        response = test_client.post(
            f"{API}/detections/plate",
            files={"image": ("frame.png", b"not an image", "image/png")},
        )

        assert response.status_code == 400
        services.invoker.invoke.assert_not_called()

    def test_empty_image(self, test_client: TestClient):
        response = test_client.post(
            f"{API}/detections/plate",
            files={"image": ("frame.png", b"", "image/png")},
        )

        assert response.status_code == 400

    def test_invocation_failure(self, test_client: TestClient, sample_image_bytes: bytes, services):
        services.invoker.invoke = AsyncMock(side_effect=InvocationError("upstream 500"))

        response = test_client.post(f"{API}/detections/threat", files=upload(sample_image_bytes))

        assert response.status_code == 502
        assert response.json()["detail"] == "Detection failed"
        assert test_client.get(f"{API}/alerts").json()["count"] == 0

    def test_repeat_upload_cached(self, test_client: TestClient, sample_image_bytes: bytes, services):
        first = test_client.post(f"{API}/detections/threat", files=upload(sample_image_bytes))
        second = test_client.post(f"{API}/detections/threat", files=upload(sample_image_bytes))

        assert first.json()["cached"] is False
        assert second.json()["cached"] is True
        assert services.invoker.invoke.await_count == 1
        assert test_client.get(f"{API}/alerts").json()["count"] == 2

    def test_repeat_upload_sees_new_watchlist_entry(
        self, test_client: TestClient, sample_image_bytes: bytes
    ):
        first = test_client.post(f"{API}/detections/plate", files=upload(sample_image_bytes))
        test_client.post(f"{API}/watchlist", json={"plate": "AKH123B"})
        second = test_client.post(f"{API}/detections/plate", files=upload(sample_image_bytes))

        assert first.json()["alert"]["severity"] == "Low"
        assert second.json()["cached"] is True
        assert second.json()["alert"]["severity"] == "High"
        assert test_client.get(f"{API}/alerts/counts").json()["counts"]["High"] == 1

    def test_detection_log(self, test_client: TestClient, sample_image_bytes: bytes):
        test_client.post(f"{API}/detections/plate", files=upload(sample_image_bytes))

        response = test_client.get(f"{API}/detections/log")

        assert response.status_code == 200
        records = response.json()["records"]
        assert len(records) == 1
        assert records[0]["plate"] == "AKH123B"
        assert records[0]["severity"] == "Low"


class TestAlertsApi:
    """Alert feed endpoints."""

    @pytest.fixture
    def populated(self, test_client: TestClient, sample_image_bytes: bytes) -> TestClient:
        test_client.post(f"{API}/detections/plate", files=upload(sample_image_bytes))
        test_client.post(f"{API}/detections/threat", files=upload(sample_image_bytes))
        test_client.post(f"{API}/detections/objects", files=upload(sample_image_bytes))
        return test_client

    def test_list_newest_first(self, populated: TestClient):
        body = populated.get(f"{API}/alerts").json()

        assert body["count"] == 3
        assert [a["type"] for a in body["alerts"]] == [
            "Object Detection",
            "Threat Identification",
            "License Plate Recognition",
        ]

    def test_filter_and_limit(self, populated: TestClient):
        critical = populated.get(f"{API}/alerts", params={"severity": "Critical"}).json()
        limited = populated.get(f"{API}/alerts", params={"limit": 1}).json()

        assert [a["severity"] for a in critical["alerts"]] == ["Critical"]
        assert limited["count"] == 1

    def test_invalid_severity(self, populated: TestClient):
        assert populated.get(f"{API}/alerts", params={"severity": "Severe"}).status_code == 422

    def test_counts(self, populated: TestClient):
        body = populated.get(f"{API}/alerts/counts").json()

        assert body == {
            "counts": {"Low": 1, "Medium": 0, "High": 1, "Critical": 1},
            "total": 3,
        }

    def test_clear(self, populated: TestClient):
        response = populated.delete(f"{API}/alerts")

        assert response.json() == {"success": True, "cleared": 3}
        assert populated.get(f"{API}/alerts").json()["count"] == 0


class TestCaptureApi:
    """Live capture endpoints."""

    def test_idle_status(self, test_client: TestClient):
        response = test_client.get(f"{API}/capture/threat")

        assert response.status_code == 200
        assert response.json()["running"] is False

    def test_start_and_stop(self, test_client: TestClient):
        started = test_client.post(f"{API}/capture/threat/start")

        assert started.status_code == 200
        assert started.json()["running"] is True
        assert test_client.get(f"{API}/capture/threat").json()["running"] is True

        stopped = test_client.post(f"{API}/capture/threat/stop")

        assert stopped.json()["running"] is False

    def test_unknown_kind(self, test_client: TestClient):
        assert test_client.post(f"{API}/capture/voice/start").status_code == 422

    def test_camera_unavailable(self, test_client: TestClient, frame_source):
        frame_source.error = CaptureError("Camera 0 is unavailable or access was denied")

        response = test_client.post(f"{API}/capture/plate/start")

        assert response.status_code == 503
        assert response.json()["detail"] == "Camera unavailable"


class TestSecurity:
    """API key and rate limit guards."""

    @pytest.fixture
    def secured_client(self, clean_settings, services, monkeypatch):
        monkeypatch.setenv("API_KEY", "checkpoint-key")
        monkeypatch.setenv("RATE_LIMIT_REQUESTS", "2")
        get_settings.cache_clear()
        reset_rate_limiter()

        from borderwatch.main import create_app

        with TestClient(create_app(services)) as client:
            yield client

    def test_mutation_requires_key(self, secured_client: TestClient):
        response = secured_client.post(f"{API}/watchlist", json={"plate": "A1"})

        assert response.status_code == 401

    def test_wrong_key(self, secured_client: TestClient):
        response = secured_client.post(
            f"{API}/watchlist",
            json={"plate": "A1"},
            headers={"X-API-Key": "wrong-key"},
        )

        assert response.status_code == 401

    def test_valid_key(self, secured_client: TestClient):
        response = secured_client.post(
            f"{API}/watchlist",
            json={"plate": "A1"},
            headers={"X-API-Key": "checkpoint-key"},
        )

        assert response.status_code == 200

    def test_reads_do_not_require_key(self, secured_client: TestClient):
        assert secured_client.get(f"{API}/watchlist").status_code == 200

    def test_detection_rate_limited(self, secured_client: TestClient, sample_image_bytes: bytes):
        headers = {"X-API-Key": "checkpoint-key"}
        statuses = [
            secured_client.post(
                f"{API}/detections/threat",
                files=upload(sample_image_bytes),
                headers=headers,
            ).status_code
            for _ in range(3)
        ]

        assert statuses == [200, 200, 429]
