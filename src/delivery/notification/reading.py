"""Mark-read commands. Both are idempotent."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.notification.notification import Notification


@delivery.command(part_of="Notification")
class MarkNotificationRead:
    notification_id = Identifier(required=True)
    user_id = Identifier(required=True)


@delivery.command(part_of="Notification")
class MarkAllNotificationsRead:
    user_id = Identifier(required=True)


@delivery.command_handler(part_of=Notification)
class NotificationReadHandler:
    @handle(MarkNotificationRead)
    def mark_read(self, command):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        if notification.mark_read(command.user_id):
            repo.add(notification)

    @handle(MarkAllNotificationsRead)
    def mark_all_read(self, command):
        repo = current_domain.repository_for(Notification)
        unread = repo._dao.query.filter(user_id=command.user_id, is_read=False).limit(None).all().items

        for notification in unread:
            notification.mark_read(command.user_id)
            repo.add(notification)
        return len(unread)
