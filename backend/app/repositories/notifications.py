import logging

from sqlalchemy.orm import joinedload

from ..models.notification import Notification
from ..utils.timeutils import utcnow
from .base import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository):
    """SQLAlchemy-backed NotificationStore plus the read-side queries used by the routes."""

    def create(
        self,
        *,
        recipient_id: int,
        sender_id: int,
        type: str,
        post_id: int | None = None,
        job_id: int | None = None,
        message: str | None = None,
    ) -> Notification:
        n = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type,
            post_id=post_id,
            job_id=job_id,
            message=message,
            read=False,
            created_at=utcnow(),
        )
        self.db.add(n)
        self.db.flush()
        return n

    def isolated(self):
        # SAVEPOINT: a failed insert rolls back alone, the caller's outer transaction survives.
        return self.db.begin_nested()

    def list_for(self, recipient_id: int, *, skip: int = 0, limit: int = 50) -> list[Notification]:
        return (
            self.db.query(Notification)
            .options(joinedload(Notification.sender), joinedload(Notification.post), joinedload(Notification.job))
            .filter(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(max(skip, 0))
            .limit(limit)
            .all()
        )

    def unread_count(self, recipient_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.recipient_id == recipient_id, Notification.read.is_(False))
            .count()
        )

    def get_owned(self, notification_id: int, recipient_id: int) -> Notification | None:
        return (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == recipient_id)
            .first()
        )

    def mark_all_read(self, recipient_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.recipient_id == recipient_id, Notification.read.is_(False))
            .update({Notification.read: True}, synchronize_session=False)
        )
