"""
Conversation identity and summaries for direct messages.

A conversation key is derived from the unordered pair of participant ids, so
every message between the same two users groups under one key no matter who
sent it.
"""
from collections.abc import Iterable
from typing import Any, Protocol

SEPARATOR = "_"


class MessageLike(Protocol):
    conversation_id: str
    sender_id: int
    receiver_id: int
    read: bool


def conversation_id(a: Any, b: Any) -> str:
    """
    Canonical key for the pair (a, b); conversation_id(a, b) == conversation_id(b, a).

    Raises ValueError for ids that are blank or contain the separator, since those
    could make two different pairs produce the same key.
    """
    left, right = str(a).strip(), str(b).strip()
    for part in (left, right):
        if not part:
            raise ValueError("Participant id is required")
        if SEPARATOR in part:
            raise ValueError(f"Participant id must not contain {SEPARATOR!r}: {part!r}")
    return SEPARATOR.join(sorted((left, right)))


def other_participant(message: MessageLike, user_id: int) -> int:
    return message.receiver_id if message.sender_id == user_id else message.sender_id


def summarize_conversations(messages: Iterable[MessageLike], user_id: int) -> list[dict]:
    """
    Collapse messages (newest first) into one entry per conversation.

    Entries keep first-seen order, so the most recently active conversation comes
    first. `lastMessage` is the newest message object; `otherUserId` is the partner.
    """
    summaries: dict[str, dict] = {}
    for m in messages:
        entry = summaries.get(m.conversation_id)
        if entry is None:
            entry = {
                "conversationId": m.conversation_id,
                "otherUserId": other_participant(m, user_id),
                "lastMessage": m,
                "unreadCount": 0,
            }
            summaries[m.conversation_id] = entry
        if m.receiver_id == user_id and not m.read:
            entry["unreadCount"] += 1
    return list(summaries.values())
