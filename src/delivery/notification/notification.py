"""Notification aggregate: an in-app message addressed to one user.

A notification records that something happened. Its content never
changes; the only mutation is the read flag, flipped by the owner.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String, Text

from delivery.domain import delivery
from delivery.errors import PermissionDenied


class NotificationType(Enum):
    ORDER_UPDATE = "order_update"
    PAYMENT = "payment"
    KYC = "kyc"
    DELIVERY = "delivery"
    GENERAL = "general"


@delivery.event(part_of="Notification")
class NotificationCreated:
    __version__ = 1

    notification_id = Identifier(required=True)
    user_id = Identifier(required=True)
    notification_type = String(required=True)
    order_id = Identifier()
    created_at = DateTime(required=True)


@delivery.aggregate
class Notification:
    user_id = Identifier(required=True)
    notification_type = String(choices=NotificationType, default=NotificationType.GENERAL.value)
    title = String(required=True, max_length=200)
    message = Text(required=True)
    order_id = Identifier()
    is_read = Boolean(default=False)
    read_at = DateTime()
    created_at = DateTime()

    @classmethod
    def create(cls, user_id, notification_type, title, message, order_id=None):
        now = datetime.now(UTC)
        notification = cls(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            order_id=order_id,
            is_read=False,
            created_at=now,
        )
        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                user_id=str(user_id),
                notification_type=notification_type,
                order_id=order_id,
                created_at=now,
            )
        )
        return notification

    def mark_read(self, user_id) -> bool:
        """Flag as read. Returns False when it already was."""
        if str(self.user_id) != str(user_id):
            raise PermissionDenied("Notifications can only be marked read by their recipient")
        if self.is_read:
            return False
        self.is_read = True
        self.read_at = datetime.now(UTC)
        return True
