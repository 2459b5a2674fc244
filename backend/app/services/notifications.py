"""
Notification fan-out.

`NotificationFanout` talks to a `NotificationStore`; the SQLAlchemy store lives in
repositories/notifications.py and tests use an in-memory one.
"""
import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    POST_LIKED = "post-liked"
    POST_COMMENTED = "post-commented"
    CONNECTION_REQUEST = "connection-request"
    CONNECTION_ACCEPTED = "connection-accepted"
    PROFILE_VIEWED = "profile-viewed"
    JOB_POSTED = "job-posted"
    JOB_APPLICATION_RECEIVED = "job-application-received"
    NEW_MESSAGE = "new-message"


class NotificationStore(Protocol):
    def create(
        self,
        *,
        recipient_id: int,
        sender_id: int,
        type: str,
        post_id: int | None = None,
        job_id: int | None = None,
        message: str | None = None,
    ) -> Any:
        """Persist one notification and return it."""

    def isolated(self):
        """Context manager scoping one write so its failure cannot undo sibling writes."""


class NotificationFanout:
    def __init__(self, store: NotificationStore):
        self.store = store

    def notify(
        self,
        recipient_id: int,
        sender_id: int,
        type: NotificationType | str,
        *,
        post_id: int | None = None,
        job_id: int | None = None,
        message: str | None = None,
    ) -> Any | None:
        """
        Persist one notification. Returns None without writing when the recipient
        is the sender: acting on your own post/profile is not notifiable.
        """
        if recipient_id == sender_id:
            return None
        ntype = NotificationType(type)
        return self.store.create(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=ntype.value,
            post_id=post_id,
            job_id=job_id,
            message=message,
        )

    def try_notify(self, recipient_id: int, sender_id: int, type: NotificationType | str, **kwargs) -> Any | None:
        """notify() that logs and swallows store failures; the triggering action must not fail."""
        created = self.fan_out([recipient_id], sender_id, type, **kwargs)
        return created[0] if created else None

    def fan_out(
        self,
        recipient_ids: Iterable[int],
        sender_id: int,
        type: NotificationType | str,
        **kwargs,
    ) -> list[Any]:
        """One independent notify() per recipient; a failed write is logged and skipped."""
        created = []
        for recipient_id in recipient_ids:
            try:
                with self.store.isolated():
                    n = self.notify(recipient_id, sender_id, type, **kwargs)
            except Exception as e:
                logger.warning(
                    "Notification write failed recipient=%s sender=%s type=%s: %s",
                    recipient_id,
                    sender_id,
                    type,
                    e,
                )
                continue
            if n is not None:
                created.append(n)
        return created
