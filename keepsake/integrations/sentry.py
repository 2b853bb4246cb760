# =============================================================================
# Sentry Error Tracking
# =============================================================================
#
# Enabled when SENTRY_DSN is set. The lifespan in keepsake/api/app.py calls
# init_sentry(); the database error handler reports through
# capture_exception(). Domain errors below 500 (bad input, bad token,
# forbidden, missing row) are user mistakes and never reported.
#
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from keepsake import __version__
from keepsake.config import Settings
from keepsake.core.errors import KeepsakeError

logger = logging.getLogger(__name__)

# Bearer tokens travel in either header
SCRUBBED_HEADERS = frozenset({"authorization", "x-authorization", "cookie"})

UNTRACED_PREFIXES = ("/health", "/uploads")


def init_sentry(settings: Settings) -> bool:
    """Start the SDK. Returns False when no DSN is configured."""
    if not settings.sentry_dsn:
        logger.info("Sentry disabled (no DSN)")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"keepsake@{__version__}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=False,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
    )
    logger.info(f"Sentry enabled ({settings.environment}, release {__version__})")
    return True


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    exc_info = hint.get("exc_info")
    if exc_info and isinstance(exc_info[1], KeepsakeError) and exc_info[1].status_code < 500:
        return None

    headers = (event.get("request") or {}).get("headers") or {}
    for name in headers:
        if name.lower() in SCRUBBED_HEADERS:
            headers[name] = "[Filtered]"
    return event


def _before_send_transaction(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # Health probes and static media would drown out the API traces
    if event.get("transaction", "").startswith(UNTRACED_PREFIXES):
        return None
    return event


def capture_exception(error: Exception, **extra: Any) -> str | None:
    """Report an unexpected error with request details. Event ID, or None when disabled."""
    if not sentry_sdk.is_initialized():
        return None

    with sentry_sdk.new_scope() as scope:
        for key, value in extra.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)
