"""NotificationFanout: append-only writes of user and admin notifications."""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from delivery.customer.registration import admin_ids
from delivery.notification.notification import Notification
from delivery.notification.reading import MarkAllNotificationsRead, MarkNotificationRead
from delivery.notification.templates import get_template

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Inbox:
    notifications: list
    unread_count: int


class NotificationFanout:
    def notify(self, user_id, notification_type, title, message, order_id=None) -> str:
        """Persist one notification. No side effects beyond the write."""
        notification = Notification.create(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            order_id=order_id,
        )
        current_domain.repository_for(Notification).add(notification)
        return str(notification.id)

    def notify_from_template(self, user_id, template_name, context, order_id=None) -> str:
        template_cls = get_template(template_name)
        rendered = template_cls.render(context)
        return self.notify(
            user_id,
            template_cls.notification_type,
            rendered["title"],
            rendered["message"],
            order_id=order_id,
        )

    def notify_admins(self, template_name, context, order_id=None) -> list[str]:
        """One notification per admin-role user.

        At-least-once and unordered: the admin set is read once, so an admin
        added mid-broadcast is skipped and one removed may still receive it.
        """
        ids = [self.notify_from_template(admin_id, template_name, context, order_id) for admin_id in admin_ids()]
        logger.info("Admin broadcast written", template=template_name, recipients=len(ids))
        return ids

    def mark_read(self, notification_id, user_id) -> None:
        current_domain.process(
            MarkNotificationRead(notification_id=notification_id, user_id=user_id),
            asynchronous=False,
        )

    def mark_all_read(self, user_id) -> int:
        return current_domain.process(MarkAllNotificationsRead(user_id=user_id), asynchronous=False)

    def inbox(self, user_id, unread_only=False, limit=50) -> Inbox:
        """Newest ``limit`` notifications, and the unread count across all of them."""
        query = current_domain.repository_for(Notification)._dao.query.filter(user_id=user_id)
        unread_count = query.filter(is_read=False).all().total
        if unread_only:
            query = query.filter(is_read=False)
        items = query.order_by("-created_at").limit(limit).all().items
        return Inbox(notifications=items, unread_count=unread_count)
