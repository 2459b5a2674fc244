from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..repositories.notifications import NotificationRepository
from ..schemas.public import notification_public
from ..utils.dependencies import get_current_user
from ..utils.error_handlers import NotFoundError, get_error_message

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


def _owned(repo: NotificationRepository, notification_id: int, user: dict):
    n = repo.get_owned(notification_id, int(user["sub"]))
    if not n:
        raise NotFoundError(get_error_message("notification_not_found"))
    return n


@router.get("/")
def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    skip: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    repo = NotificationRepository(db)
    me_id = int(user["sub"])
    return {
        "notifications": [notification_public(n) for n in repo.list_for(me_id, skip=skip, limit=limit)],
        "unreadCount": repo.unread_count(me_id),
    }


@router.get("/unread/count")
def unread_count(db: Session = Depends(get_db), user=Depends(get_current_user)):
    return {"count": NotificationRepository(db).unread_count(int(user["sub"]))}


@router.put("/mark-all-read")
def mark_all_read(db: Session = Depends(get_db), user=Depends(get_current_user)):
    repo = NotificationRepository(db)
    repo.mark_all_read(int(user["sub"]))
    repo.commit()
    return {"message": "All notifications marked as read"}


@router.put("/{notification_id:int}/read")
def mark_read(notification_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    repo = NotificationRepository(db)
    n = _owned(repo, notification_id, user)
    n.read = True
    repo.commit()
    db.refresh(n)
    return {"notification": notification_public(n)}


@router.delete("/{notification_id:int}")
def delete_notification(notification_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    repo = NotificationRepository(db)
    db.delete(_owned(repo, notification_id, user))
    repo.commit()
    return {"message": "Notification deleted"}
