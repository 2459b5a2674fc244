from dataclasses import dataclass

import pytest

from backend.app.services.conversations import conversation_id, other_participant, summarize_conversations


@dataclass
class Msg:
    conversation_id: str
    sender_id: int
    receiver_id: int
    read: bool = False


def _msg(sender: int, receiver: int, read: bool = False) -> Msg:
    return Msg(conversation_id(sender, receiver), sender, receiver, read)


class TestConversationId:
    def test_is_symmetric(self):
        assert conversation_id(7, 3) == conversation_id(3, 7) == "3_7"

    def test_distinct_partners_give_distinct_keys(self):
        keys = {conversation_id(1, other) for other in (2, 3, 12, 21)}
        assert len(keys) == 4
        assert conversation_id(1, 12) != conversation_id(11, 2)

    def test_string_ids_sort_lexicographically(self):
        assert conversation_id(10, 9) == "10_9"

    @pytest.mark.parametrize("bad", ["", "  ", "a_b"])
    def test_rejects_blank_or_separator_ids(self, bad):
        with pytest.raises(ValueError):
            conversation_id(bad, "x")


class TestSummaries:
    def test_groups_newest_first_and_counts_unread_for_viewer(self):
        # newest first, as the repository returns them
        messages = [
            _msg(3, 1),
            _msg(2, 1),
            _msg(1, 2),
            _msg(2, 1, read=True),
            _msg(2, 1),
        ]
        summaries = summarize_conversations(messages, user_id=1)

        assert [s["otherUserId"] for s in summaries] == [3, 2]
        assert summaries[0]["lastMessage"] is messages[0]
        assert summaries[1]["lastMessage"] is messages[1]
        assert [s["unreadCount"] for s in summaries] == [1, 2]

    def test_own_messages_never_count_as_unread(self):
        summaries = summarize_conversations([_msg(1, 2), _msg(1, 2)], user_id=1)
        assert summaries == [
            {"conversationId": "1_2", "otherUserId": 2, "lastMessage": summaries[0]["lastMessage"], "unreadCount": 0}
        ]

    def test_other_participant(self):
        m = _msg(4, 9)
        assert other_participant(m, 4) == 9
        assert other_participant(m, 9) == 4
