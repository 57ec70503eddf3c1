from typing import List

from ..models.notification import Notification
from .base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    def create(self, user_id: int, message: str) -> Notification:
        return self.add(Notification(user_id=user_id, message=message))

    def list_for_user(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def unread_count(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def mark_all_read(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({"is_read": True}, synchronize_session=False)
        )
