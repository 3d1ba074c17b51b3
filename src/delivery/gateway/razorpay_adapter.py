"""Razorpay REST adapter.

Talks to the Orders and Payments APIs with HTTP basic auth (key id and key
secret). Every request is time-bounded; failures surface as
UpstreamUnavailable.
"""

import requests
import structlog

from delivery import config
from delivery.errors import UpstreamUnavailable
from delivery.gateway.port import GatewayOrder, GatewayPayment, PaymentGateway

logger = structlog.get_logger(__name__)

API_BASE = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):
    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        timeout: float | None = None,
        api_base: str = API_BASE,
    ):
        self._key_id = key_id if key_id is not None else config.razorpay_key_id()
        self._key_secret = key_secret if key_secret is not None else config.gateway_key_secret()
        self.timeout = timeout if timeout is not None else config.outbound_timeout()
        self.api_base = api_base.rstrip("/")

    @property
    def key_id(self) -> str:
        return self._key_id

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = requests.request(
                method,
                f"{self.api_base}{path}",
                auth=(self._key_id, self._key_secret),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Payment gateway unreachable ({exc.__class__.__name__})") from exc

        if not response.ok:
            logger.warning("Payment gateway error", path=path, status_code=response.status_code)
            raise UpstreamUnavailable(f"Payment gateway answered HTTP {response.status_code}")
        return response.json()

    def create_order(self, amount_minor: int, currency: str, receipt: str) -> GatewayOrder:
        body = self._request("POST", "/orders", json={"amount": amount_minor, "currency": currency, "receipt": receipt})
        return GatewayOrder(
            gateway_order_id=body["id"],
            amount_minor=int(body["amount"]),
            currency=body["currency"],
            receipt=body.get("receipt", receipt),
        )

    def fetch_payment(self, payment_id: str) -> GatewayPayment:
        body = self._request("GET", f"/payments/{payment_id}")
        return GatewayPayment(
            payment_id=body["id"],
            gateway_order_id=body.get("order_id"),
            status=body.get("status", "unknown"),
            method=body.get("method"),
            amount_minor=body.get("amount"),
            raw=body,
        )
