# backend/notifications/services.py

import storage
from models import db


def mark_read(user_id, notification_id):
    """Unread -> read. Marking an already-read notification is a no-op."""

    notification = storage.get_notification(user_id, notification_id)
    if not notification:
        return None, "Notification not found"

    if not notification.read:
        storage.mark_notification_read(notification)
        db.session.commit()

    return notification, None
