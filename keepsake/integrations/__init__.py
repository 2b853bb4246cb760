"""
Third-party services: reCAPTCHA verification and Sentry error tracking.
"""

from keepsake.integrations.captcha import RecaptchaVerifier, get_captcha_verifier

__all__ = [
    "RecaptchaVerifier",
    "get_captcha_verifier",
]
