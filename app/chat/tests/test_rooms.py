"""
Tests for conversation room and channel naming.

Room names are the only link between a message, its typing indicators and
the sessions that joined the conversation, so they must be symmetric and
collision free.
"""

import re

import pytest

from chat.rooms import PRESENCE_GROUP, personal_channel, room_for
from core.exceptions import SelfTargetError, ValidationError

# Channels group names: ASCII alphanumerics, hyphens, underscores, periods
GROUP_NAME = re.compile(r"^[a-zA-Z0-9\-_.]{1,99}$")


class TestRoomFor:
    """Tests for room_for()."""

    def test_is_symmetric(self):
        """
        Both participants derive the same room.

        Why it matters: A sender and a receiver must join the same group.
        """
        assert room_for(3, 7) == room_for(7, 3)

    def test_joins_ids_in_string_order(self):
        assert room_for(7, 3) == "3_7"
        assert room_for(12, 7) == "12_7"

    def test_accepts_mixed_str_and_int_ids(self):
        assert room_for("7", 12) == room_for(12, 7)

    def test_different_pairs_never_collide(self):
        """
        Distinct pairs produce distinct rooms.

        Why it matters: "1_23" and "12_3" style collisions would leak
        messages between conversations.
        """
        ids = range(1, 40)
        rooms = {}
        for a in ids:
            for b in ids:
                if a == b:
                    continue
                pair = frozenset((a, b))
                room = room_for(a, b)
                assert rooms.setdefault(room, pair) == pair

    def test_self_pair_raises(self):
        with pytest.raises(SelfTargetError) as exc_info:
            room_for(5, "5")

        assert exc_info.value.error_code == "SELF_TARGET"
        assert isinstance(exc_info.value, ValidationError)

    def test_u1_u2_scenario(self):
        """Users u1 and u2 share the room "u1_u2" whoever computes it."""
        assert room_for("u1", "u2") == "u1_u2"
        assert room_for("u2", "u1") == "u1_u2"

    def test_room_is_valid_group_name(self):
        assert GROUP_NAME.match(room_for(123456789, 987654321))


class TestChannelNames:
    """Tests for personal_channel() and PRESENCE_GROUP."""

    def test_personal_channel_format(self):
        assert personal_channel(42) == "user_42"

    def test_personal_channel_never_matches_a_room(self):
        assert personal_channel(42) != room_for(42, 43)

    def test_names_are_valid_group_names(self):
        assert GROUP_NAME.match(personal_channel(42))
        assert GROUP_NAME.match(PRESENCE_GROUP)
