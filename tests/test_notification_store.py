import logging

from backend.app.models.notification import Notification
from backend.app.models.user import User
from backend.app.repositories.notifications import NotificationRepository
from backend.app.services.notifications import NotificationFanout, NotificationType


def _users(db, *names: str) -> list[int]:
    users = [User(name=n, email=f"{n}@example.com", password="x") for n in names]
    db.add_all(users)
    db.commit()
    return [u.id for u in users]


def test_fan_out_savepoint_keeps_sibling_writes(db_session, caplog):
    a, b, c = _users(db_session, "fan_a", "fan_b", "fan_c")
    fanout = NotificationFanout(NotificationRepository(db_session))

    # 999999 violates the recipient foreign key; a is the sender.
    with caplog.at_level(logging.WARNING):
        created = fanout.fan_out([b, 999999, a, c], a, NotificationType.JOB_POSTED)
    db_session.commit()

    assert [n.recipient_id for n in created] == [b, c]
    rows = db_session.query(Notification).filter(Notification.sender_id == a).order_by(Notification.id).all()
    assert [(n.recipient_id, n.type, n.read) for n in rows] == [(b, "job-posted", False), (c, "job-posted", False)]
    assert "recipient=999999" in caplog.text


def test_self_notification_writes_nothing(db_session):
    (a,) = _users(db_session, "self_a")
    assert NotificationFanout(NotificationRepository(db_session)).notify(a, a, "post-liked") is None
    db_session.commit()
    assert db_session.query(Notification).filter(Notification.recipient_id == a).count() == 0
