"""Application tests for OrderStateMachine: placement, guarded transitions and side effects."""

import threading
from unittest.mock import patch

import pytest
from protean import current_domain
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError

from delivery.actors import Actor
from delivery.domain import delivery
from delivery.errors import ConcurrentModification, InvalidState, InvalidTransition, PermissionDenied
from delivery.notification.fanout import NotificationFanout
from delivery.notification.notification import Notification
from delivery.order.order import Order, OrderStatus
from delivery.webhooks.delivery_log import DeliveryStatus, WebhookDelivery


def _notifications_for(user_id):
    return current_domain.repository_for(Notification)._dao.query.filter(user_id=str(user_id)).all().items


class TestPlaceOrder:
    def test_order_is_pending_with_frozen_pricing(self, order):
        assert order.status == OrderStatus.PENDING.value
        assert order.quantity == 500
        assert order.pricing.subtotal == "35250.00"
        assert order.pricing.gst == "54.00"
        assert order.pricing.total_amount == "35604.00"

    def test_order_number_format(self, order):
        assert order.order_number.startswith("FS")
        assert len(order.order_number) == 14
        assert order.order_number[2:].isdigit()

    def test_pricing_not_rewritten_by_later_rate_change(self, settings, order):
        from delivery.pricing.management import UpdateSetting

        current_domain.process(UpdateSetting(key="rate_per_liter", value="95", updated_by="admin:1"), asynchronous=False)
        reloaded = current_domain.repository_for(Order).get(order.id)
        assert reloaded.pricing.rate_per_liter == "70.50"
        assert reloaded.pricing.total_amount == "35604.00"

    def test_customer_is_notified(self, customer, order):
        notifications = _notifications_for(customer.id)
        assert [n.title for n in notifications] == ["Order placed"]
        assert str(notifications[0].order_id) == str(order.id)

    def test_both_external_systems_hear_about_it(self, order, admin_system, driver_system):
        assert admin_system.events("new-order")[0]["order_number"] == order.order_number
        assert driver_system.events("new_order")[0]["order_details"]["total_amount"] == "35604.00"

    def test_high_value_order_alerts_admins(self, admin, customer, place_order, admin_system):
        big = place_order(quantity=800)
        assert big.pricing.total_amount == "56754.00"
        assert [n.title for n in _notifications_for(admin.id)] == ["High-value order placed"]
        assert admin_system.events("high-value-order")[0]["order_id"] == str(big.id)

    def test_regular_order_does_not_alert_admins(self, admin, order, admin_system):
        assert _notifications_for(admin.id) == []
        assert admin_system.events("high-value-order") == []

    def test_outbound_failure_does_not_undo_the_order(self, services, customer, admin_system, driver_system):
        from datetime import date

        from delivery.order.state_machine import DeliveryTarget, Schedule
        from delivery.pricing.snapshot import snapshot

        admin_system.configure(should_succeed=False)
        driver_system.configure(should_succeed=False)

        result = services.orders.create(
            customer_id=str(customer.id),
            pricing=snapshot(200),
            target=DeliveryTarget(address="Warehouse 4, Chakan"),
            schedule=Schedule(scheduled_date=date(2026, 10, 22), scheduled_time="09:00"),
        )

        assert result.webhooks == {"admin": False, "driver": False}
        assert current_domain.repository_for(Order).get(result.order.id).status == OrderStatus.PENDING.value
        failed = current_domain.repository_for(WebhookDelivery)._dao.query.filter(
            status=DeliveryStatus.FAILED.value
        ).all().items
        assert len(failed) == 2

    def test_lost_notification_does_not_undo_the_order(self, services, customer, place_order, admin_system):
        with patch.object(NotificationFanout, "notify_from_template", side_effect=RuntimeError("store down")):
            order = place_order()

        assert services.orders.load(order.id).status == OrderStatus.PENDING.value
        assert admin_system.events("new-order")[0]["order_number"] == order.order_number
        assert _notifications_for(customer.id) == []


class TestTransitions:
    def test_legal_path_to_delivered(self, services, order):
        system = Actor.driver_system()
        services.orders.transition(order.id, "pending", "confirmed", system)
        services.orders.transition(order.id, "confirmed", "in_transit", system)
        result = services.orders.transition(order.id, "in_transit", "delivered", system)
        assert result.order.status == OrderStatus.DELIVERED.value
        assert result.previous_status == "in_transit"

    def test_pending_to_delivered_is_rejected_without_write(self, services, order):
        with pytest.raises(InvalidTransition):
            services.orders.transition(order.id, "pending", "delivered", Actor.driver_system())
        reloaded = services.orders.load(order.id)
        assert reloaded.status == OrderStatus.PENDING.value
        assert reloaded.updated_at == order.updated_at

    def test_stale_expected_status(self, services, order):
        services.orders.transition(order.id, "pending", "confirmed", Actor.driver_system())
        with pytest.raises(ConcurrentModification):
            services.orders.transition(order.id, "pending", "cancelled", Actor.system(), reason="Duplicate")

    def test_unknown_status_is_rejected(self, services, order):
        with pytest.raises(InvalidTransition):
            services.orders.transition(order.id, "pending", "shipped", Actor.driver_system())

    def test_status_change_is_announced(self, services, customer, order, admin_system):
        services.orders.transition(order.id, "pending", "confirmed", Actor.driver_system())
        titles = [n.title for n in _notifications_for(customer.id)]
        assert "Order confirmed" in titles
        change = admin_system.events("order-status-change")[0]
        assert change["old_status"] == "pending"
        assert change["new_status"] == "confirmed"
        assert change["changed_by"] == "driver_system:driver-app"

    def test_concurrent_transitions_have_one_winner(self, services, order):
        barrier = threading.Barrier(2)
        outcomes = []

        def attempt(target, reason=None):
            with delivery.domain_context():
                barrier.wait()
                try:
                    services.orders.transition(order.id, "pending", target, Actor.system(), reason=reason)
                    outcomes.append(("ok", target))
                except ConcurrentModification:
                    outcomes.append(("conflict", target))

        threads = [
            threading.Thread(target=attempt, args=("confirmed",)),
            threading.Thread(target=attempt, args=("cancelled", "Customer called in")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert sorted(kind for kind, _ in outcomes) == ["conflict", "ok"]
        winner = next(target for kind, target in outcomes if kind == "ok")
        assert services.orders.load(order.id).status == winner

    def test_stale_version_write_is_a_conflict(self, services, order):
        with patch.object(Order, "transition", side_effect=ExpectedVersionError("stale _version")):
            with pytest.raises(ConcurrentModification):
                services.orders.transition(order.id, "pending", "confirmed", Actor.driver_system())
        assert services.orders.load(order.id).status == OrderStatus.PENDING.value

    def test_lost_notification_does_not_fail_the_transition(self, services, customer, order, admin_system):
        with patch.object(NotificationFanout, "notify_from_template", side_effect=RuntimeError("store down")):
            result = services.orders.transition(order.id, "pending", "confirmed", Actor.driver_system())

        assert result.order.status == OrderStatus.CONFIRMED.value
        assert result.webhooks == {"admin": True}
        assert services.orders.load(order.id).status == OrderStatus.CONFIRMED.value
        assert "Order confirmed" not in [n.title for n in _notifications_for(customer.id)]


class TestCancel:
    def test_owner_cancels_pending(self, services, customer_actor, order, admin_system):
        result = services.orders.cancel(order.id, "Plans changed", customer_actor)
        assert result.order.status == OrderStatus.CANCELLED.value
        assert result.order.cancellation_reason == "Plans changed"
        assert result.order.cancelled_by == customer_actor.label()
        assert admin_system.events("order-cancelled")[0]["reason"] == "Plans changed"

    def test_admin_cancels_confirmed(self, services, admin_actor, order, move_order):
        move_order(order, "confirmed")
        result = services.orders.cancel(order.id, "Depot closed", admin_actor)
        assert result.order.status == OrderStatus.CANCELLED.value

    def test_reason_required(self, services, customer_actor, order):
        with pytest.raises(ValidationError):
            services.orders.cancel(order.id, "  ", customer_actor)
        assert services.orders.load(order.id).status == OrderStatus.PENDING.value

    def test_other_customer_cannot_cancel(self, services, other_actor, order):
        with pytest.raises(PermissionDenied):
            services.orders.cancel(order.id, "Not mine", other_actor)

    @pytest.mark.parametrize("status", ["in_transit", "delivered"])
    def test_too_late_to_cancel(self, services, customer_actor, order, move_order, status):
        move_order(order, status)
        with pytest.raises(InvalidTransition):
            services.orders.cancel(order.id, "Changed my mind", customer_actor)
        assert services.orders.load(order.id).status == status


class TestAssignDriver:
    def test_assign_confirms_and_records_driver(self, services, admin_actor, order, driver):
        result = services.orders.assign_driver(order.id, driver.id, admin_actor)
        assert result.order.status == OrderStatus.CONFIRMED.value
        assert str(result.order.driver_id) == str(driver.id)

    def test_only_admins_assign(self, services, customer_actor, order, driver):
        with pytest.raises(PermissionDenied):
            services.orders.assign_driver(order.id, driver.id, customer_actor)

    def test_inactive_driver_rejected(self, services, admin_actor, order, driver):
        from delivery.driver.management import SetDriverAvailability

        current_domain.process(SetDriverAvailability(driver_id=str(driver.id), is_active=False), asynchronous=False)
        with pytest.raises(InvalidState):
            services.orders.assign_driver(order.id, driver.id, admin_actor)
        assert services.orders.load(order.id).status == OrderStatus.PENDING.value

    def test_unknown_driver(self, services, admin_actor, order):
        with pytest.raises(ObjectNotFoundError):
            services.orders.assign_driver(order.id, "no-such-driver", admin_actor)

    def test_stale_expected_status(self, services, admin_actor, order, driver, move_order):
        move_order(order, "confirmed")
        with pytest.raises(ConcurrentModification):
            services.orders.assign_driver(order.id, driver.id, admin_actor, expected_status="pending")


class TestReads:
    def test_owner_sees_order(self, services, customer_actor, order):
        assert services.orders.visible_order(order.id, customer_actor).id == order.id

    def test_other_customer_sees_nothing(self, services, other_actor, order):
        with pytest.raises(ObjectNotFoundError):
            services.orders.visible_order(order.id, other_actor)

    def test_admin_sees_any_order(self, services, admin_actor, order):
        assert services.orders.visible_order(order.id, admin_actor).id == order.id

    def test_find_by_order_number(self, services, order):
        assert services.orders.find(order.order_number).id == order.id

    def test_list_newest_first_and_limited(self, services, customer_actor, place_order):
        placed = [place_order(quantity=100 + i) for i in range(3)]
        listed = services.orders.orders_for(customer_actor, limit=2)
        assert [o.id for o in listed] == [placed[2].id, placed[1].id]

    def test_list_is_scoped_to_owner(self, services, other_actor, order):
        assert services.orders.orders_for(other_actor) == []

    def test_admin_lists_everything(self, services, admin_actor, other_customer, place_order):
        place_order()
        place_order(owner=other_customer)
        assert len(services.orders.orders_for(admin_actor)) == 2
