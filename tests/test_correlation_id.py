# tests/test_correlation_id.py
"""
Tests for correlation ID middleware and context management.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from fundfolio.main import app
from fundfolio.middleware.correlation import MAX_CORRELATION_ID_LENGTH
from fundfolio.utils.context import (
    clear_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)


class TestCorrelationIdContext:
    """Tests for correlation ID context functions."""

    def test_get_returns_none_when_not_set(self):
        """Should return None when correlation ID is not set."""
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        """Should set and retrieve correlation ID."""
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"
        clear_correlation_id()

    def test_reset_restores_previous_value(self):
        """reset_correlation_id undoes exactly one set."""
        clear_correlation_id()
        outer = set_correlation_id("outer")
        inner = set_correlation_id("inner")

        reset_correlation_id(inner)
        assert get_correlation_id() == "outer"

        reset_correlation_id(outer)
        assert get_correlation_id() is None


class TestCorrelationIdMiddleware:
    """Tests for correlation ID middleware."""

    @pytest.fixture
    def client(self):
        with TestClient(app) as c:
            yield c

    def test_uses_correlation_id_header(self, client: TestClient):
        response = client.get("/health/live", headers={"X-Correlation-ID": "trace-abc"})

        assert response.headers["X-Correlation-ID"] == "trace-abc"

    def test_falls_back_to_request_id_header(self, client: TestClient):
        """X-Request-ID is used when X-Correlation-ID is absent."""
        response = client.get("/health/live", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Correlation-ID"] == "req-42"

    def test_correlation_id_header_wins(self, client: TestClient):
        response = client.get(
            "/health/live",
            headers={"X-Correlation-ID": "corr", "X-Request-ID": "req"},
        )

        assert response.headers["X-Correlation-ID"] == "corr"

    def test_generates_uuid_when_missing(self, client: TestClient):
        response = client.get("/health/live")

        # Raises if not a valid UUID
        uuid.UUID(response.headers["X-Correlation-ID"])

    def test_overlong_id_is_replaced(self, client: TestClient):
        """IDs above the length limit are not echoed back."""
        too_long = "x" * (MAX_CORRELATION_ID_LENGTH + 1)

        response = client.get("/health/live", headers={"X-Correlation-ID": too_long})

        assert response.headers["X-Correlation-ID"] != too_long
        uuid.UUID(response.headers["X-Correlation-ID"])

    def test_context_cleared_after_request(self, client: TestClient):
        clear_correlation_id()

        client.get("/health/live", headers={"X-Correlation-ID": "scoped"})

        assert get_correlation_id() is None

