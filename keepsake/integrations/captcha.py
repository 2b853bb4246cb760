# =============================================================================
# reCAPTCHA v3 Verification
# =============================================================================
#
# Setup:
#   1. Register the site at https://www.google.com/recaptcha/admin (v3)
#   2. Set env vars:
#      - RECAPTCHA_SECRET=...
#      - RECAPTCHA_MIN_SCORE=0.5   (optional)
#   3. RECAPTCHA_ENABLED=false skips the check (local development only)
#
# Login and register call `verify()` before touching credentials.
#
# =============================================================================

from __future__ import annotations

import logging

import httpx
from fastapi import Request

from keepsake.config import Settings
from keepsake.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class RecaptchaVerifier:
    """Server-side check of a client reCAPTCHA token."""

    def __init__(
        self,
        secret: str,
        min_score: float = 0.5,
        verify_url: str = "https://www.google.com/recaptcha/api/siteverify",
        enabled: bool = True,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.secret = secret
        self.min_score = min_score
        self.verify_url = verify_url
        self.enabled = enabled
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> RecaptchaVerifier:
        return cls(
            secret=settings.recaptcha_secret,
            min_score=settings.recaptcha_min_score,
            verify_url=settings.recaptcha_verify_url,
            enabled=settings.recaptcha_enabled,
        )

    def verify(self, token: str | None) -> bool:
        """
        True if Google accepts the token with a score >= min_score.

        An empty token is a failure. Transport errors raise UpstreamError
        rather than silently letting the request through.
        """
        if not self.enabled:
            return True
        if not token:
            return False

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.verify_url,
                    data={"secret": self.secret, "response": token},
                )
                response.raise_for_status()
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"reCAPTCHA verification request failed: {e}")
            raise UpstreamError("Recaptcha verification unavailable")

        passed = bool(result.get("success")) and float(result.get("score", 0.0)) >= self.min_score
        if not passed:
            logger.info(f"reCAPTCHA rejected token (score={result.get('score')})")
        return passed


def get_captcha_verifier(request: Request) -> RecaptchaVerifier:
    return request.app.state.captcha
