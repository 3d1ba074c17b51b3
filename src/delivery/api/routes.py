"""FastAPI routes for the fuel delivery core.

Customer-facing routes authenticate through the X-User-Id header, admin
routes additionally require the admin role, and the driver-system webhooks
authenticate with the shared X-Api-Secret header.

Handlers are plain functions. FastAPI runs them in its threadpool, so the
blocking calls to the payment gateway and the notifier systems never stall
the event loop.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from protean.utils.globals import current_domain

from delivery import config
from delivery.actors import Actor
from delivery.api.dependencies import current_actor, get_services, require_admin, verify_driver_secret
from delivery.api.schemas import (
    AssignDriverRequest,
    CancelOrderRequest,
    ConfigureGatewayRequest,
    CreateGatewayOrderRequest,
    CreateSettingRequest,
    CustomerResponse,
    DeliveryStatusResponse,
    DeliveryStatusWebhook,
    DriverLocationWebhook,
    DriverResponse,
    GatewayOrderResponse,
    InboxResponse,
    MarkAllReadResponse,
    NotificationResponse,
    OrderChangeResponse,
    OrderListResponse,
    OrderResponse,
    OtpForwardResponse,
    OtpResponse,
    PaymentListResponse,
    PaymentResponse,
    PlaceOrderRequest,
    PricingResponse,
    RegisterCustomerRequest,
    RegisterDriverRequest,
    SettingListResponse,
    SettingResponse,
    StatusResponse,
    SubmitKycRequest,
    SubmitPaymentRequest,
    UpdateSettingRequest,
    VerifyGatewayPaymentRequest,
    WebhookDeliveryResponse,
)
from delivery.customer.customer import Customer
from delivery.driver.driver import Driver
from delivery.driver.management import RegisterDriver, SetDriverAvailability
from delivery.gateway.fake_adapter import FakeGateway
from delivery.order.state_machine import DeliveryTarget, OrderResult, Schedule
from delivery.pricing.management import CreateSetting, DeleteSetting, UpdateSetting
from delivery.pricing.setting import SystemSetting
from delivery.pricing.snapshot import snapshot
from delivery.services import Services
from delivery.webhooks.delivery_log import WebhookDelivery


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        quantity=order.quantity,
        pricing=PricingResponse(
            rate_per_liter=order.pricing.rate_per_liter,
            subtotal=order.pricing.subtotal,
            delivery_charges=order.pricing.delivery_charges,
            gst=order.pricing.gst,
            total_amount=order.pricing.total_amount,
        ),
        delivery_address=order.delivery_address,
        delivery_latitude=order.delivery_latitude,
        delivery_longitude=order.delivery_longitude,
        address_id=str(order.address_id) if order.address_id else None,
        scheduled_date=order.scheduled_date,
        scheduled_time=order.scheduled_time,
        status=order.status,
        driver_id=str(order.driver_id) if order.driver_id else None,
        has_delivery_otp=bool(order.delivery_otp),
        cancellation_reason=order.cancellation_reason,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _change_response(result: OrderResult) -> OrderChangeResponse:
    return OrderChangeResponse(
        order=_order_response(result.order),
        previous_status=result.previous_status,
        webhooks=result.webhooks,
    )


def _payment_response(payment) -> PaymentResponse:
    return PaymentResponse(
        payment_id=str(payment.id),
        order_id=str(payment.order_id),
        amount=payment.amount,
        currency=payment.currency,
        method=payment.method,
        status=payment.status,
        transaction_id=payment.transaction_id,
        gateway_order_id=payment.gateway_order_id,
        failure_reason=payment.failure_reason,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


def _customer_response(customer, admin_notified=None) -> CustomerResponse:
    return CustomerResponse(
        customer_id=str(customer.id),
        name=customer.name,
        email=customer.email,
        phone=customer.phone,
        role=customer.role,
        kyc_status=customer.kyc_status,
        admin_notified=admin_notified,
    )


def _setting_response(setting) -> SettingResponse:
    return SettingResponse(
        key=setting.key,
        value=setting.value,
        data_type=setting.data_type,
        category=setting.category,
        description=setting.description,
        is_editable=setting.is_editable,
        updated_by=setting.updated_by,
        updated_at=setting.updated_at,
    )


def _driver_response(driver) -> DriverResponse:
    return DriverResponse(
        driver_id=str(driver.id),
        name=driver.name,
        phone=driver.phone,
        vehicle_number=driver.vehicle_number,
        is_active=driver.is_active,
        current_latitude=driver.current_latitude,
        current_longitude=driver.current_longitude,
        last_location_at=driver.last_location_at,
    )


# ---------------------------------------------------------------------------
# Customer Router
# ---------------------------------------------------------------------------
customer_router = APIRouter(prefix="/customers", tags=["customers"])


@customer_router.post("", status_code=201, response_model=CustomerResponse)
def register_customer(
    body: RegisterCustomerRequest,
    services: Services = Depends(get_services),
) -> CustomerResponse:
    result = services.onboarding.register(name=body.name, email=body.email, phone=body.phone)
    return _customer_response(result.customer, admin_notified=result.admin_notified)


@customer_router.get("/me", response_model=CustomerResponse)
def get_me(actor: Actor = Depends(current_actor)) -> CustomerResponse:
    customer = current_domain.repository_for(Customer).get(actor.user_id)
    return _customer_response(customer)


@customer_router.put("/me/kyc", response_model=CustomerResponse)
def submit_kyc(
    body: SubmitKycRequest,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> CustomerResponse:
    result = services.onboarding.submit_kyc(actor.user_id, body.documents)
    return _customer_response(result.customer, admin_notified=result.admin_notified)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderChangeResponse)
def place_order(
    body: PlaceOrderRequest,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> OrderChangeResponse:
    """Price the order from current settings and place it in PENDING."""
    result = services.orders.create(
        customer_id=actor.user_id,
        pricing=snapshot(body.quantity),
        target=DeliveryTarget(
            address=body.delivery_address,
            latitude=body.delivery_latitude,
            longitude=body.delivery_longitude,
            address_id=body.address_id,
        ),
        schedule=Schedule(scheduled_date=body.scheduled_date, scheduled_time=body.scheduled_time),
    )
    return _change_response(result)


@order_router.get("", response_model=OrderListResponse)
def list_orders(
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> OrderListResponse:
    orders = services.orders.orders_for(actor, limit=limit)
    return OrderListResponse(orders=[_order_response(o) for o in orders], count=len(orders))


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> OrderResponse:
    return _order_response(services.orders.visible_order(order_id, actor))


@order_router.post("/{order_id}/cancel", response_model=OrderChangeResponse)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> OrderChangeResponse:
    result = services.orders.cancel(order_id, body.reason, actor)
    services.payments.cancel_pending_settlements(order_id)
    return _change_response(result)


@order_router.post("/{order_id}/generate-otp", response_model=OtpResponse)
def generate_otp(
    order_id: str,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> OtpResponse:
    issue = services.otp.generate(order_id, actor)
    return OtpResponse(order_id=order_id, otp=issue.code, forwarded=issue.forwarded)


@order_router.post("/{order_id}/resend-otp", response_model=OtpForwardResponse)
def resend_otp(
    order_id: str,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> OtpForwardResponse:
    forwarded = services.otp.resend(order_id, actor)
    return OtpForwardResponse(order_id=order_id, forwarded=forwarded)


@order_router.put("/{order_id}/assign-driver", response_model=OrderChangeResponse)
def assign_driver(
    order_id: str,
    body: AssignDriverRequest,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
) -> OrderChangeResponse:
    result = services.orders.assign_driver(
        order_id,
        body.driver_id,
        actor,
        expected_status=body.expected_status,
    )
    return _change_response(result)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("", status_code=201, response_model=PaymentResponse)
def submit_payment(
    body: SubmitPaymentRequest,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> PaymentResponse:
    payment = services.payments.submit(body.order_id, body.method, actor)
    return _payment_response(payment)


@payment_router.get("/order/{order_id}", response_model=PaymentListResponse)
def list_order_payments(
    order_id: str,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> PaymentListResponse:
    payments = services.payments.payments_for_order(order_id, actor)
    return PaymentListResponse(payments=[_payment_response(p) for p in payments])


@payment_router.post("/gateway/create-order", status_code=201, response_model=GatewayOrderResponse)
def create_gateway_order(
    body: CreateGatewayOrderRequest,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> GatewayOrderResponse:
    checkout = services.payments.initiate(body.order_id, actor, method=body.method)
    return GatewayOrderResponse(
        payment_id=checkout.payment_id,
        gateway_order_id=checkout.gateway_order_id,
        amount=checkout.amount,
        amount_minor=checkout.amount_minor,
        currency=checkout.currency,
        key_id=checkout.key_id,
    )


@payment_router.post("/gateway/verify", response_model=PaymentResponse)
def verify_gateway_payment(
    body: VerifyGatewayPaymentRequest,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> PaymentResponse:
    payment = services.payments.verify(
        body.order_id,
        body.gateway_order_id,
        body.gateway_payment_id,
        body.signature,
        actor,
    )
    return _payment_response(payment)


@payment_router.post("/gateway/configure", response_model=StatusResponse)
def configure_gateway(
    body: ConfigureGatewayRequest,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
) -> StatusResponse:
    """Configure the fake gateway's behavior (development only)."""
    if config.is_production():
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")
    gateway = services.payments.gateway
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")
    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        payment_method=body.payment_method,
    )
    return StatusResponse(status="configured")


# ---------------------------------------------------------------------------
# Notification Router
# ---------------------------------------------------------------------------
notification_router = APIRouter(prefix="/notifications", tags=["notifications"])


@notification_router.get("", response_model=InboxResponse)
def get_inbox(
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> InboxResponse:
    inbox = services.fanout.inbox(actor.user_id, unread_only=unread_only, limit=limit)
    return InboxResponse(
        notifications=[
            NotificationResponse(
                notification_id=str(n.id),
                notification_type=n.notification_type,
                title=n.title,
                message=n.message,
                order_id=str(n.order_id) if n.order_id else None,
                is_read=n.is_read,
                created_at=n.created_at,
            )
            for n in inbox.notifications
        ],
        unread_count=inbox.unread_count,
    )


# Registered before /{notification_id}/read so "read-all" is not taken for an id
@notification_router.put("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(marked=services.fanout.mark_all_read(actor.user_id))


@notification_router.put("/{notification_id}/read", response_model=StatusResponse)
def mark_read(
    notification_id: str,
    actor: Actor = Depends(current_actor),
    services: Services = Depends(get_services),
) -> StatusResponse:
    services.fanout.mark_read(notification_id, actor.user_id)
    return StatusResponse(status="read")


# ---------------------------------------------------------------------------
# Webhook Router (driver application)
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post(
    "/delivery-status",
    response_model=DeliveryStatusResponse,
    dependencies=[Depends(verify_driver_secret)],
)
def delivery_status_webhook(
    body: DeliveryStatusWebhook,
    services: Services = Depends(get_services),
) -> DeliveryStatusResponse:
    """Apply a status change reported by the driver application."""
    outcome = services.receiver.receive(
        body.order_id,
        body.status,
        driver_id=body.driver_id,
        timestamp=body.timestamp,
    )
    order = outcome.result.order
    return DeliveryStatusResponse(
        success=True,
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        previous_status=outcome.result.previous_status,
        otp_issued=outcome.otp_issued,
        otp_forwarded=outcome.otp_forwarded,
        admin_notified=bool(outcome.result.webhooks.get("admin")),
    )


@webhook_router.post(
    "/driver-location",
    response_model=DriverResponse,
    dependencies=[Depends(verify_driver_secret)],
)
def driver_location_webhook(
    body: DriverLocationWebhook,
    services: Services = Depends(get_services),
) -> DriverResponse:
    driver = services.receiver.record_driver_location(body.driver_id, body.latitude, body.longitude)
    return _driver_response(driver)


@webhook_router.post("/test", response_model=StatusResponse, dependencies=[Depends(verify_driver_secret)])
def webhook_test() -> StatusResponse:
    return StatusResponse(status="authenticated")


@webhook_router.get("/deliveries", response_model=list[WebhookDeliveryResponse])
def list_webhook_deliveries(
    status: str | None = None,
    order_id: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    actor: Actor = Depends(require_admin),
) -> list[WebhookDeliveryResponse]:
    """Inspect the outbound log, newest first. Payloads are never returned."""
    filters = {}
    if status:
        filters["status"] = status
    if order_id:
        filters["order_id"] = order_id

    query = current_domain.repository_for(WebhookDelivery)._dao.query
    if filters:
        query = query.filter(**filters)
    items = query.order_by("-created_at").limit(limit).all().items
    return [
        WebhookDeliveryResponse(
            delivery_id=str(d.id),
            target=d.target,
            event=d.event,
            order_id=d.order_id,
            status=d.status,
            attempts=d.attempts,
            last_error=d.last_error,
            next_attempt_at=d.next_attempt_at,
        )
        for d in items
    ]


# ---------------------------------------------------------------------------
# Settings Router (admin)
# ---------------------------------------------------------------------------
settings_router = APIRouter(prefix="/settings", tags=["settings"])


@settings_router.get("", response_model=SettingListResponse)
def list_settings(category: str | None = None, actor: Actor = Depends(require_admin)) -> SettingListResponse:
    query = current_domain.repository_for(SystemSetting)._dao.query
    if category:
        query = query.filter(category=category)
    items = query.order_by("key").limit(None).all().items
    return SettingListResponse(settings=[_setting_response(s) for s in items])


@settings_router.get("/{key}", response_model=SettingResponse)
def get_setting(key: str, actor: Actor = Depends(require_admin)) -> SettingResponse:
    return _setting_response(current_domain.repository_for(SystemSetting).get(key))


@settings_router.post("", status_code=201, response_model=SettingResponse)
def create_setting(body: CreateSettingRequest, actor: Actor = Depends(require_admin)) -> SettingResponse:
    command = CreateSetting(
        key=body.key,
        value=body.value,
        data_type=body.data_type,
        category=body.category,
        description=body.description,
        is_editable=body.is_editable,
        updated_by=actor.label(),
    )
    current_domain.process(command, asynchronous=False)
    return _setting_response(current_domain.repository_for(SystemSetting).get(body.key))


@settings_router.put("/{key}", response_model=SettingResponse)
def update_setting(
    key: str,
    body: UpdateSettingRequest,
    actor: Actor = Depends(require_admin),
) -> SettingResponse:
    command = UpdateSetting(
        key=key,
        value=body.value,
        description=body.description,
        updated_by=actor.label(),
    )
    current_domain.process(command, asynchronous=False)
    return _setting_response(current_domain.repository_for(SystemSetting).get(key))


@settings_router.delete("/{key}", response_model=StatusResponse)
def delete_setting(key: str, actor: Actor = Depends(require_admin)) -> StatusResponse:
    current_domain.process(DeleteSetting(key=key, deleted_by=actor.label()), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Driver Router (admin)
# ---------------------------------------------------------------------------
driver_router = APIRouter(prefix="/drivers", tags=["drivers"])


@driver_router.post("", status_code=201, response_model=DriverResponse)
def register_driver(body: RegisterDriverRequest, actor: Actor = Depends(require_admin)) -> DriverResponse:
    command = RegisterDriver(name=body.name, phone=body.phone, vehicle_number=body.vehicle_number)
    driver_id = current_domain.process(command, asynchronous=False)
    return _driver_response(current_domain.repository_for(Driver).get(driver_id))


@driver_router.get("", response_model=list[DriverResponse])
def list_drivers(active_only: bool = False, actor: Actor = Depends(require_admin)) -> list[DriverResponse]:
    dao = current_domain.repository_for(Driver)._dao
    drivers = dao.query.filter(is_active=True).all().items if active_only else dao.query.all().items
    return [_driver_response(d) for d in sorted(drivers, key=lambda d: d.name)]


@driver_router.put("/{driver_id}/activate", response_model=DriverResponse)
def activate_driver(driver_id: str, actor: Actor = Depends(require_admin)) -> DriverResponse:
    current_domain.process(SetDriverAvailability(driver_id=driver_id, is_active=True), asynchronous=False)
    return _driver_response(current_domain.repository_for(Driver).get(driver_id))


@driver_router.put("/{driver_id}/deactivate", response_model=DriverResponse)
def deactivate_driver(driver_id: str, actor: Actor = Depends(require_admin)) -> DriverResponse:
    current_domain.process(SetDriverAvailability(driver_id=driver_id, is_active=False), asynchronous=False)
    return _driver_response(current_domain.repository_for(Driver).get(driver_id))


routers = (
    customer_router,
    order_router,
    payment_router,
    notification_router,
    webhook_router,
    settings_router,
    driver_router,
)
