import contextlib
import logging

import pytest

from backend.app.services.notifications import NotificationFanout, NotificationType


class MemoryStore:
    """In-memory NotificationStore; recipients in `fail_for` raise on write."""

    def __init__(self, fail_for=()):
        self.rows: list[dict] = []
        self.fail_for = set(fail_for)

    def create(self, **fields):
        if fields["recipient_id"] in self.fail_for:
            raise RuntimeError("disk full")
        self.rows.append(fields)
        return fields

    @contextlib.contextmanager
    def isolated(self):
        mark = len(self.rows)
        try:
            yield
        except Exception:
            del self.rows[mark:]
            raise


def test_self_notification_is_not_persisted():
    store = MemoryStore()
    assert NotificationFanout(store).notify(5, 5, NotificationType.POST_LIKED) is None
    assert store.rows == []


def test_notify_persists_exactly_one_unread_record():
    store = MemoryStore()
    n = NotificationFanout(store).notify(5, 6, "post-commented", post_id=11)
    assert store.rows == [n]
    assert n["type"] == "post-commented"
    assert (n["recipient_id"], n["sender_id"], n["post_id"], n["job_id"]) == (5, 6, 11, None)


def test_unknown_type_is_rejected():
    with pytest.raises(ValueError):
        NotificationFanout(MemoryStore()).notify(1, 2, "post_like")


def test_fan_out_isolates_failed_writes(caplog):
    store = MemoryStore(fail_for={3})
    with caplog.at_level(logging.WARNING):
        created = NotificationFanout(store).fan_out([2, 3, 4, 1], 1, NotificationType.JOB_POSTED, job_id=9)

    # 3 failed, 1 is the sender
    assert [r["recipient_id"] for r in created] == [2, 4]
    assert [r["recipient_id"] for r in store.rows] == [2, 4]
    assert "Notification write failed recipient=3" in caplog.text


def test_try_notify_swallows_store_failure():
    store = MemoryStore(fail_for={8})
    assert NotificationFanout(store).try_notify(8, 1, NotificationType.NEW_MESSAGE, message="hi") is None
    assert NotificationFanout(store).try_notify(9, 1, NotificationType.NEW_MESSAGE, message="hi")["message"] == "hi"


def test_notification_types_are_the_closed_set():
    assert {t.value for t in NotificationType} == {
        "post-liked",
        "post-commented",
        "connection-request",
        "connection-accepted",
        "profile-viewed",
        "job-posted",
        "job-application-received",
        "new-message",
    }
