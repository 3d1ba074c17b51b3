"""Shared-secret check for inbound driver webhooks."""

import hmac

from delivery import config


def secret_matches(supplied: str | None, expected: str | None = None) -> bool:
    """Constant-time comparison against the configured driver secret."""
    expected = expected if expected is not None else config.driver_webhook_secret()
    if not supplied or not expected:
        return False
    return hmac.compare_digest(supplied.encode(), expected.encode())
