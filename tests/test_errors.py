"""
Tests for error kinds, status mapping and error-tracking filters.
"""

import pytest
from fastapi import HTTPException

from legalvibes.config import Settings
from legalvibes.errors import (
    ConflictError,
    ErrorKind,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
    error_for_status,
)
from legalvibes.integrations.sentry import _filter_events, _filter_transactions


# =============================================================================
# Status mapping
# =============================================================================


@pytest.mark.parametrize(
    "status, kind",
    [
        (400, ErrorKind.VALIDATION),
        (401, ErrorKind.UNAUTHORIZED),
        (403, ErrorKind.FORBIDDEN),
        (404, ErrorKind.NOT_FOUND),
        (409, ErrorKind.CONFLICT),
        (422, ErrorKind.VALIDATION),
        (500, ErrorKind.SERVICE),
        (502, ErrorKind.SERVICE),
    ],
)
def test_status_maps_to_kind(status, kind):
    error = error_for_status(status, "boom")
    assert error.kind == kind
    assert error.message == "boom"


def test_network_error_has_no_status():
    error = NetworkError("offline")
    assert error.kind == ErrorKind.NETWORK
    assert error.status_code == 0


def test_storage_backend_flag():
    assert Settings(database_url="").use_sql is False
    assert Settings(database_url="sqlite:///legalvibes.db").use_sql is True


# =============================================================================
# Error tracking filters
# =============================================================================


def hint_for(error: Exception) -> dict:
    return {"exc_info": (type(error), error, None)}


class TestFilterEvents:
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("Client name is required"),
            UnauthorizedError("Invalid token"),
            ForbiddenError("nope"),
            NotFoundError("Client not found"),
            ConflictError("already exists"),
            HTTPException(status_code=401, detail="Invalid or expired token"),
            HTTPException(status_code=422, detail="bad body"),
        ],
    )
    def test_expected_errors_are_dropped(self, error):
        assert _filter_events({"level": "error"}, hint_for(error)) is None

    @pytest.mark.parametrize(
        "error",
        [
            ServiceError("An error occurred while trying to create the client"),
            NetworkError("offline"),
            HTTPException(status_code=500, detail="boom"),
            RuntimeError("unexpected"),
        ],
    )
    def test_failures_are_reported(self, error):
        event = {"level": "error"}
        assert _filter_events(event, hint_for(error)) is event

    def test_credentials_are_scrubbed(self):
        event = {
            "request": {
                "headers": {
                    "Authorization": "Bearer secret-token",
                    "Cookie": "session=1",
                    "Accept": "application/json",
                }
            }
        }

        filtered = _filter_events(event, {})

        headers = filtered["request"]["headers"]
        assert headers["Authorization"] == "[Filtered]"
        assert headers["Cookie"] == "[Filtered]"
        assert headers["Accept"] == "application/json"

    def test_event_without_request(self):
        event = {"message": "hello"}
        assert _filter_events(event, {}) is event


class TestFilterTransactions:
    @pytest.mark.parametrize("transaction", ["/health", "/healthz", "/ready"])
    def test_health_checks_are_dropped(self, transaction):
        assert _filter_transactions({"transaction": transaction}, {}) is None

    def test_other_transactions_are_kept(self):
        event = {"transaction": "/api/client"}
        assert _filter_transactions(event, {}) is event
