"""
Process-local registry of live websocket sessions.

A user may be connected from several devices at once. The registry maps a
user id to the set of channel names of that user's sessions, which lets
the consumer tell a user's first connect from an additional tab, and a
last disconnect from a closed tab.

One registry is created by the ASGI application (config.asgi) and handed
to every ChatConsumer through ``as_asgi(registry=...)``. Its lifetime is
the process lifetime: RegistryLifespan clears it when the server shuts
down.

Scaling note:
    Each process sees only its own sessions. Cross-process delivery goes
    through channel-layer groups, so the registry is only used for
    first/last-session decisions and advisory liveness checks.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from channels.db import database_sync_to_async

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Map of user id to the set of that user's live session references.

    All methods are synchronous and never await, so on the asyncio loop
    each call runs to completion without interleaving.

    Usage:
        registry = ConnectionRegistry()

        first = registry.attach(user.id, channel_name)   # True
        registry.attach(user.id, other_channel)          # False
        registry.sessions_of(user.id)                    # both channels
        registry.detach(user.id, channel_name)           # False
        registry.detach(user.id, other_channel)          # True, last one
    """

    def __init__(self):
        self._sessions: dict[str, set[str]] = defaultdict(set)

    @staticmethod
    def _key(user_id) -> str:
        return str(user_id)

    def attach(self, user_id, session_ref: str) -> bool:
        """
        Register a session for a user.

        Returns:
            True if this is the user's first live session
        """
        sessions = self._sessions[self._key(user_id)]
        first_session = not sessions
        sessions.add(session_ref)
        logger.debug(
            f"Attached session {session_ref} for user {user_id} "
            f"({len(sessions)} live)"
        )
        return first_session

    def detach(self, user_id, session_ref: str) -> bool:
        """
        Remove a session. Unknown users or sessions are ignored.

        Returns:
            True only if the user had this session and it was the last one
        """
        key = self._key(user_id)
        sessions = self._sessions.get(key)
        if not sessions or session_ref not in sessions:
            return False

        sessions.discard(session_ref)
        if sessions:
            return False

        del self._sessions[key]
        logger.debug(f"Last session closed for user {user_id}")
        return True

    def sessions_of(self, user_id) -> frozenset[str]:
        """
        Return the live sessions of a user.

        Advisory only: a session may disconnect right after this returns.
        """
        return frozenset(self._sessions.get(self._key(user_id), ()))

    def is_online(self, user_id) -> bool:
        return bool(self._sessions.get(self._key(user_id)))

    def clear(self) -> None:
        """Forget every session (process shutdown)."""
        self._sessions.clear()

    def __len__(self) -> int:
        """Number of users with at least one live session."""
        return len(self._sessions)


class RegistryLifespan:
    """
    ASGI lifespan handler that ties a registry to the server process.

    On startup it starts the presence sweeper: one warm-up pass demotes
    records left "online" by a previous process before new sessions
    arrive, then the beat schedule is enabled. On shutdown it clears the
    registry.

    Usage (config/asgi.py):
        ProtocolTypeRouter({
            "http": django_asgi_app,
            "websocket": ...,
            "lifespan": RegistryLifespan(connection_registry),
        })
    """

    def __init__(self, registry: ConnectionRegistry, sweeper=None):
        self.registry = registry
        self.sweeper = sweeper

    async def __call__(self, scope, receive, send):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await self._startup()
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                self.registry.clear()
                logger.info("Connection registry cleared on shutdown")
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _startup(self):
        from chat.sweeper import PresenceSweeper

        sweeper = self.sweeper or PresenceSweeper()
        try:
            result = await database_sync_to_async(sweeper.start)()
        except Exception:
            # The server still starts; beat picks the schedule up once created
            logger.exception("Could not start the presence sweeper")
            return
        logger.info(f"Startup presence sweep: {result}")
