"""Error taxonomy for the delivery core.

Every error carries a stable ``code`` so callers can tell rejections apart,
and the HTTP status the API layer maps it to. Messages never contain OTP
codes, signatures or secrets.
"""


class DeliveryError(Exception):
    code = "delivery_error"
    status_code = 400

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class InvalidTransition(DeliveryError):
    """The requested status edge is not in the legal graph."""

    code = "invalid_transition"
    status_code = 400


class ConcurrentModification(DeliveryError):
    """Another actor moved the order away from the expected status."""

    code = "concurrent_modification"
    status_code = 409


class InvalidState(DeliveryError):
    """An operation's state precondition was not met."""

    code = "invalid_state"
    status_code = 409


class InvalidSignature(DeliveryError):
    """A gateway payment signature failed verification."""

    code = "invalid_signature"
    status_code = 400


class PermissionDenied(DeliveryError):
    code = "permission_denied"
    status_code = 403


class UpstreamUnavailable(DeliveryError):
    """An outbound call to the gateway, driver or admin system failed."""

    code = "upstream_unavailable"
    status_code = 502
