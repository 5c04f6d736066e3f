# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Setup:
#   1. Create a Python project at sentry.io
#   2. Copy DSN to .env: SENTRY_DSN=https://...@sentry.io/...
#   3. pip install "legalvibes[sentry]"
#
# Usage:
#   init_sentry() runs at app startup (in legalvibes/api/app.py)
#
# =============================================================================

import logging

from fastapi import HTTPException

from legalvibes.config import Settings, get_settings
from legalvibes.errors import AppError, ErrorKind

logger = logging.getLogger(__name__)

# Sentry SDK is optional - gracefully degrade if not installed
try:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    SENTRY_AVAILABLE = True
except ImportError:
    SENTRY_AVAILABLE = False
    sentry_sdk = None

SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key")
EXPECTED_STATUS_CODES = (400, 401, 403, 404, 409, 422)
REPORTED_KINDS = (ErrorKind.SERVICE, ErrorKind.NETWORK)


def init_sentry(settings: Settings | None = None) -> bool:
    """
    Initialize Sentry error tracking.

    Returns True if initialized, False if skipped.
    """
    if not SENTRY_AVAILABLE:
        logger.info("Sentry SDK not installed - error tracking disabled")
        return False

    settings = settings or get_settings()

    if not settings.sentry_dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,

        # Performance monitoring (sample 10% of transactions in prod)
        traces_sample_rate=0.1 if settings.is_production else 1.0,

        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            ),
        ],

        # Emails and tokens stay out of reports
        send_default_pii=False,

        before_send=_filter_events,
        before_send_transaction=_filter_transactions,
    )

    logger.info(f"Sentry initialized for {settings.environment}")
    return True


def _filter_events(event: dict, hint: dict) -> dict | None:
    """Filter out expected client errors and scrub credentials."""
    if "exc_info" in hint:
        exc_type, exc_value, _ = hint["exc_info"]

        # Bad input, auth failures and missing records are not bugs
        if isinstance(exc_value, HTTPException) and exc_value.status_code in EXPECTED_STATUS_CODES:
            return None
        if isinstance(exc_value, AppError) and exc_value.kind not in REPORTED_KINDS:
            return None

    if "request" in event:
        headers = event["request"].get("headers") or {}
        for key in list(headers.keys()):
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = "[Filtered]"

    return event


def _filter_transactions(event: dict, hint: dict) -> dict | None:
    """Skip health checks."""
    transaction = event.get("transaction", "")
    if transaction in ("/health", "/healthz", "/ready"):
        return None
    return event


def capture_exception(error: Exception, **context) -> str | None:
    """
    Capture an exception to Sentry.

    Returns the event ID if captured, None otherwise.
    """
    if not SENTRY_AVAILABLE or not sentry_sdk.is_initialized():
        logger.error(f"Error (Sentry disabled): {error}", exc_info=error)
        return None

    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)


def set_user(user_id: str) -> None:
    """Tag subsequent error reports with the acting identity (id only)."""
    if SENTRY_AVAILABLE and sentry_sdk.is_initialized():
        sentry_sdk.set_user({"id": user_id})
