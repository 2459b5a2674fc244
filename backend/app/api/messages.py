import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..repositories.messages import MessageRepository
from ..schemas.public import message_public, user_brief
from ..services.conversations import conversation_id, summarize_conversations
from ..services.notifications import NotificationFanout, NotificationType
from ..utils.dependencies import get_current_user, get_notifier
from ..utils.error_handlers import ForbiddenError, NotFoundError, get_error_message
from ..utils.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["Messages"])

# Notification text carries a preview of the message, not the whole body.
PREVIEW_CHARS = 100


class SendMessage(BaseModel):
    receiverId: int | None = None
    content: str | None = None


@router.get("/conversations")
def list_conversations(db: Session = Depends(get_db), user=Depends(get_current_user)):
    me_id = int(user["sub"])
    messages = MessageRepository(db).list_for_user(me_id)
    conversations = []
    for entry in summarize_conversations(messages, me_id):
        last = entry["lastMessage"]
        other = last.receiver if last.sender_id == me_id else last.sender
        conversations.append(
            {
                "conversationId": entry["conversationId"],
                "otherUser": user_brief(other),
                "lastMessage": message_public(last),
                "unreadCount": entry["unreadCount"],
            }
        )
    return {"conversations": conversations}


@router.get("/conversation/{user_id:int}")
def get_conversation(user_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    """Messages with one partner, oldest first; opening the thread marks what was sent to the caller as read."""
    me_id = int(user["sub"])
    other = db.query(User).filter(User.id == user_id).first()
    if not other:
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))

    repo = MessageRepository(db)
    conv_id = conversation_id(me_id, user_id)
    marked = repo.mark_conversation_read(conv_id, me_id)
    db.commit()
    if marked:
        logger.debug("Marked %s messages read conversation=%s reader=%s", marked, conv_id, me_id)

    return {
        "conversationId": conv_id,
        "otherUser": {**user_brief(other), "bio": other.bio or ""},
        "messages": [message_public(m) for m in repo.list_conversation(conv_id)],
    }


@router.post("/send", status_code=201)
def send_message(
    payload: SendMessage,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    notifier: NotificationFanout = Depends(get_notifier),
):
    if not payload.receiverId or not payload.content or not payload.content.strip():
        raise HTTPException(status_code=400, detail="Receiver and message content are required")

    sender_id = int(user["sub"])
    if not db.query(User).filter(User.id == payload.receiverId).first():
        raise HTTPException(status_code=404, detail="Receiver not found")
    if payload.receiverId == sender_id:
        raise HTTPException(status_code=400, detail=get_error_message("self_message"))

    content = payload.content.strip()
    message = MessageRepository(db).create(sender_id=sender_id, receiver_id=payload.receiverId, content=content)
    notifier.try_notify(payload.receiverId, sender_id, NotificationType.NEW_MESSAGE, message=content[:PREVIEW_CHARS])
    db.commit()
    db.refresh(message)
    return {"message": "Message sent successfully", "data": message_public(message)}


@router.put("/{message_id:int}/read")
def mark_read(message_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    message = MessageRepository(db).get(message_id)
    if not message:
        raise NotFoundError(get_error_message("message_not_found"))
    if message.receiver_id != int(user["sub"]):
        raise ForbiddenError("Unauthorized")

    if not message.read:
        message.read = True
        message.read_at = utcnow()
        db.commit()
    return {"message": "Message marked as read"}


@router.delete("/{message_id:int}")
def delete_message(message_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    message = MessageRepository(db).get(message_id)
    if not message:
        raise NotFoundError(get_error_message("message_not_found"))
    if message.sender_id != int(user["sub"]):
        raise ForbiddenError("Unauthorized")

    db.delete(message)
    db.commit()
    return {"message": "Message deleted successfully"}


@router.get("/unread/count")
def unread_count(db: Session = Depends(get_db), user=Depends(get_current_user)):
    return {"unreadCount": MessageRepository(db).unread_count(int(user["sub"]))}
