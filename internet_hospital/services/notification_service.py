import json
import logging
from typing import Optional

import redis
from sqlalchemy.exc import SQLAlchemyError

from ..models.notification import Notification
from ..repositories.unit_of_work import SqlAlchemyUnitOfWork
from ..schemas.common import OperationError, OperationResult
from ..schemas.notification import NotificationList, NotificationResponse

logger = logging.getLogger(__name__)

NOTIFICATION_CHANNEL = "notifications:{user_id}"


class NotificationService:
    def __init__(self, uow: SqlAlchemyUnitOfWork, redis_client: Optional[redis.Redis] = None):
        self.uow = uow
        self.redis = redis_client

    def add_notification(self, user_id: int, text: str) -> Notification:
        """Append a notification inside the caller's unit of work (not committed here)."""
        notification = self.uow.notifications.create(user_id, text)
        self.uow.flush()
        return notification

    def notify(self, user_id: int) -> None:
        """Signal a "new message" event to the user's live listeners."""
        if self.redis is None:
            return
        try:
            unread = self.uow.notifications.unread_count(user_id)
            self.redis.publish(
                NOTIFICATION_CHANNEL.format(user_id=user_id),
                json.dumps({"event": "new_message", "unread_count": unread}),
            )
        except redis.RedisError as exc:
            logger.warning(f"Could not publish notification signal for user {user_id}: {exc}")
        except SQLAlchemyError as exc:
            # The change is already committed; only the signal is lost
            self.uow.rollback()
            logger.warning(f"Could not count unread notifications for user {user_id}: {exc}")

    def get_notifications(self, user_id: int, unread_only: bool = False) -> NotificationList:
        notifications = self.uow.notifications.list_for_user(user_id, unread_only=unread_only)
        return NotificationList(
            unread_count=self.uow.notifications.unread_count(user_id),
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
        )

    def mark_as_read(self, notification_id: int, user_id: int) -> OperationResult:
        with self.uow:
            notification = self.uow.notifications.get(notification_id)
            if notification is None or notification.user_id != user_id:
                return OperationResult.fail(OperationError.NOT_FOUND, "Notification not found")
            notification.is_read = True
            self.uow.commit()
        return OperationResult.ok("Notification marked as read")

    def mark_all_as_read(self, user_id: int) -> int:
        with self.uow:
            updated = self.uow.notifications.mark_all_read(user_id)
            self.uow.commit()
        return updated
