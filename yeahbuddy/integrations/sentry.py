# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Setup:
#   1. Create a Python project at sentry.io
#   2. Copy DSN to .env: YEAHBUDDY_SENTRY_DSN=https://...@sentry.io/...
#
# Usage:
#   Called from the application lifespan (yeahbuddy/api/app.py)
#
# =============================================================================

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from yeahbuddy.config import Settings, get_settings
from yeahbuddy.core.errors import YeahBuddyError
from yeahbuddy.core.utils import redact_query_tokens

logger = logging.getLogger(__name__)

SCRUBBED_HEADERS = ("authorization", "cookie", "x-api-key")


def init_sentry(settings: Settings | None = None) -> bool:
    """
    Configure sentry-sdk for the API process.

    Does nothing and returns False when no DSN is configured.
    """
    settings = settings or get_settings()

    if not settings.sentry_dsn:
        logger.info("No Sentry DSN configured, error tracking off")
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

        # Bearer tokens and passwords must never leave the process
        send_default_pii=False,

        before_send=filter_event,
        before_send_transaction=_filter_transactions,
    )

    logger.info(f"Error tracking enabled ({settings.environment})")
    return True


def filter_event(event: dict, hint: dict) -> dict | None:
    """Drop expected domain errors and scrub credentials from requests."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]

        # Access denied, not found, already submitted: expected outcomes
        if isinstance(exc_value, YeahBuddyError):
            return None

    if "request" in event:
        request = event["request"]
        if "headers" in request:
            headers = request["headers"]
            for key in list(headers.keys()):
                if key.lower() in SCRUBBED_HEADERS:
                    headers[key] = "[Filtered]"
        if isinstance(request.get("query_string"), str):
            request["query_string"] = redact_query_tokens("?" + request["query_string"])[1:]
        if isinstance(request.get("url"), str):
            request["url"] = redact_query_tokens(request["url"])

    return event


def _filter_transactions(event: dict, hint: dict) -> dict | None:
    """Health checks are not worth a transaction."""
    if event.get("transaction", "") in ("/health", "/healthz", "/ready"):
        return None
    return event
