from sqlalchemy import or_
from sqlalchemy.orm import joinedload

from ..models.message import Message
from ..services.conversations import conversation_id
from ..utils.timeutils import utcnow
from .base import BaseRepository


class MessageRepository(BaseRepository):
    def create(self, *, sender_id: int, receiver_id: int, content: str) -> Message:
        m = Message(
            conversation_id=conversation_id(sender_id, receiver_id),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            read=False,
            created_at=utcnow(),
        )
        self.db.add(m)
        self.db.flush()
        return m

    def get(self, message_id: int) -> Message | None:
        return self.db.query(Message).filter(Message.id == message_id).first()

    def list_for_user(self, user_id: int) -> list[Message]:
        """Every message the user sent or received, newest first."""
        return (
            self.db.query(Message)
            .options(joinedload(Message.sender), joinedload(Message.receiver))
            .filter(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .all()
        )

    def list_conversation(self, conv_id: str) -> list[Message]:
        """Messages of one conversation, oldest first."""
        return (
            self.db.query(Message)
            .options(joinedload(Message.sender), joinedload(Message.receiver))
            .filter(Message.conversation_id == conv_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    def mark_conversation_read(self, conv_id: str, reader_id: int) -> int:
        """Mark unread messages addressed to the reader as read; returns rows touched (0 when repeated)."""
        return (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conv_id,
                Message.receiver_id == reader_id,
                Message.read.is_(False),
            )
            .update({Message.read: True, Message.read_at: utcnow()}, synchronize_session=False)
        )

    def unread_count(self, user_id: int) -> int:
        return (
            self.db.query(Message)
            .filter(Message.receiver_id == user_id, Message.read.is_(False))
            .count()
        )
