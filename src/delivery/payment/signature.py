"""Gateway payment signatures: HMAC-SHA256 over ``order_id|payment_id``."""

import hashlib
import hmac

import structlog

from delivery.errors import InvalidSignature

logger = structlog.get_logger(__name__)

_PREFIX = 8


def compute_signature(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    message = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(order_id, gateway_order_id: str, gateway_payment_id: str, signature: str, secret: str) -> None:
    """Raise InvalidSignature unless ``signature`` matches exactly.

    The log keeps only short prefixes of both signatures.
    """
    expected = compute_signature(gateway_order_id, gateway_payment_id, secret)
    supplied = signature or ""
    if not hmac.compare_digest(expected.encode(), supplied.encode()):
        logger.warning(
            "Payment signature rejected",
            order_id=str(order_id),
            gateway_order_id=gateway_order_id,
            supplied_prefix=supplied[:_PREFIX],
            expected_prefix=expected[:_PREFIX],
        )
        raise InvalidSignature("Payment signature verification failed", order_id=str(order_id))
