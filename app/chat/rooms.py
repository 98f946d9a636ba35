"""
Channel-layer addressing for the chat app.

Every fan-out in the backend goes to one of three kinds of group:

- a conversation room shared by exactly two users (room_for)
- a user's personal channel, joined by all of that user's sessions
  (personal_channel)
- the presence broadcast group joined by every connected session
  (PRESENCE_GROUP)

Room names are built here and nowhere else. Channels restricts group
names to ASCII letters, digits, hyphens, underscores and periods, with a
length below 100, which integer user ids joined by "_" always satisfy.
"""

from __future__ import annotations

from core.exceptions import SelfTargetError

ROOM_SEPARATOR = "_"
PERSONAL_CHANNEL_PREFIX = "user_"
PRESENCE_GROUP = "presence"


def room_for(user_a, user_b) -> str:
    """
    Return the canonical room name for two distinct users.

    The ids are compared as strings and joined lowest first, so
    ``room_for(a, b) == room_for(b, a)``. The separator never appears in
    an id, so two different pairs can never share a name.

    Args:
        user_a: A user id (or anything whose str() is the id)
        user_b: The other user id

    Raises:
        SelfTargetError: If both ids are the same user

    Example:
        room_for(12, 7)   # "12_7" (string order, not numeric)
        room_for("7", 12) # "12_7"
    """
    first, second = str(user_a), str(user_b)
    if first == second:
        raise SelfTargetError(
            "A conversation room needs two different users",
            details={"user_id": first},
        )
    return ROOM_SEPARATOR.join(sorted((first, second)))


def personal_channel(user_id) -> str:
    """Return the group every session of ``user_id`` joins, e.g. ``user_42``."""
    return f"{PERSONAL_CHANNEL_PREFIX}{user_id}"
