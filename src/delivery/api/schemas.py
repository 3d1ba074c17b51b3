"""Pydantic request/response schemas for the delivery API.

These are external contracts (anti-corruption layer), separate from the
internal protean commands. Amounts travel as decimal strings.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

TimeSlotValue = Literal["09:00", "11:00", "13:00", "15:00", "17:00", "19:00"]
PaymentMethodValue = Literal["cod", "upi", "cards", "netbanking", "wallet"]
DriverReportedStatus = Literal["confirmed", "in_transit", "delivered"]


def _decimal_text(value):
    """Coordinates arrive as numbers or strings; keep them as exact text."""
    if value is None:
        return None
    return str(value)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------
class RegisterCustomerRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = Field(default=None, max_length=20)


class CustomerResponse(BaseModel):
    customer_id: str
    name: str
    email: str
    phone: str | None = None
    role: str
    kyc_status: str
    admin_notified: bool | None = None


class SubmitKycRequest(BaseModel):
    documents: dict[str, str] = Field(min_length=1)

    model_config = {
        "json_schema_extra": {
            "examples": [{"documents": {"aadhaar": "kyc/cust-001/aadhaar.pdf", "pan": "kyc/cust-001/pan.pdf"}}]
        }
    }


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    quantity: int = Field(gt=0)
    delivery_address: str = Field(min_length=1, max_length=500)
    delivery_latitude: str | None = None
    delivery_longitude: str | None = None
    address_id: str | None = None
    scheduled_date: date
    scheduled_time: TimeSlotValue

    _coordinates = field_validator("delivery_latitude", "delivery_longitude", mode="before")(_decimal_text)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "quantity": 500,
                    "delivery_address": "Plot 12, MIDC Industrial Area, Pune",
                    "delivery_latitude": "18.5204",
                    "delivery_longitude": "73.8567",
                    "scheduled_date": "2026-10-21",
                    "scheduled_time": "11:00",
                }
            ]
        }
    }


class PricingResponse(BaseModel):
    rate_per_liter: str
    subtotal: str
    delivery_charges: str
    gst: str
    total_amount: str


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    quantity: int
    pricing: PricingResponse
    delivery_address: str
    delivery_latitude: str | None = None
    delivery_longitude: str | None = None
    address_id: str | None = None
    scheduled_date: date
    scheduled_time: str
    status: str
    driver_id: str | None = None
    has_delivery_otp: bool
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderChangeResponse(BaseModel):
    order: OrderResponse
    previous_status: str | None = None
    webhooks: dict[str, bool]


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    count: int


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reason must not be blank")
        return value.strip()


class AssignDriverRequest(BaseModel):
    driver_id: str = Field(min_length=1)
    expected_status: Literal["pending", "confirmed", "in_transit", "delivered", "cancelled"] | None = None


class OtpResponse(BaseModel):
    order_id: str
    otp: str
    forwarded: bool


class OtpForwardResponse(BaseModel):
    order_id: str
    forwarded: bool


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class SubmitPaymentRequest(BaseModel):
    order_id: str
    method: PaymentMethodValue


class PaymentResponse(BaseModel):
    payment_id: str
    order_id: str
    amount: str
    currency: str
    method: str
    status: str
    transaction_id: str | None = None
    gateway_order_id: str | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PaymentListResponse(BaseModel):
    payments: list[PaymentResponse]


class CreateGatewayOrderRequest(BaseModel):
    order_id: str
    method: Literal["upi", "cards", "netbanking", "wallet"] = "upi"


class GatewayOrderResponse(BaseModel):
    payment_id: str
    gateway_order_id: str
    amount: str
    amount_minor: int
    currency: str
    key_id: str


class VerifyGatewayPaymentRequest(BaseModel):
    order_id: str
    gateway_order_id: str = Field(min_length=1)
    gateway_payment_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Gateway timeout"
    payment_method: str = "upi"


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
class NotificationResponse(BaseModel):
    notification_id: str
    notification_type: str
    title: str
    message: str
    order_id: str | None = None
    is_read: bool
    created_at: datetime | None = None


class InboxResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    marked: int


# ---------------------------------------------------------------------------
# Webhooks (driver application contract uses camelCase)
# ---------------------------------------------------------------------------
class DeliveryStatusWebhook(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId", min_length=1)
    status: DriverReportedStatus
    driver_id: str | None = Field(default=None, alias="driverId")
    timestamp: datetime | None = None


class DeliveryStatusResponse(BaseModel):
    success: bool
    order_id: str
    order_number: str
    status: str
    previous_status: str | None = None
    otp_issued: bool
    otp_forwarded: bool
    admin_notified: bool


class DriverLocationWebhook(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: str = Field(alias="driverId", min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class WebhookDeliveryResponse(BaseModel):
    delivery_id: str
    target: str
    event: str
    order_id: str | None = None
    status: str
    attempts: int
    last_error: str | None = None
    next_attempt_at: datetime | None = None


# ---------------------------------------------------------------------------
# Admin: settings and drivers
# ---------------------------------------------------------------------------
class CreateSettingRequest(BaseModel):
    key: str = Field(min_length=1, max_length=100, pattern=r"^[a-z][a-z0-9_]*$")
    value: str
    data_type: Literal["string", "number", "boolean", "json"] = "string"
    category: str = "general"
    description: str | None = None
    is_editable: bool = True


class UpdateSettingRequest(BaseModel):
    value: str
    description: str | None = None


class SettingResponse(BaseModel):
    key: str
    value: str
    data_type: str
    category: str | None = None
    description: str | None = None
    is_editable: bool
    updated_by: str | None = None
    updated_at: datetime | None = None


class SettingListResponse(BaseModel):
    settings: list[SettingResponse]


class RegisterDriverRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=20)
    vehicle_number: str | None = Field(default=None, max_length=20)


class DriverResponse(BaseModel):
    driver_id: str
    name: str
    phone: str
    vehicle_number: str | None = None
    is_active: bool
    current_latitude: str | None = None
    current_longitude: str | None = None
    last_location_at: datetime | None = None


class StatusResponse(BaseModel):
    status: str
