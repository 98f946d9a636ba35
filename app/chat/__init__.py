"""
Chat app for real-time direct messaging.

This app handles:
- Direct messages and conversation history
- WebSocket real-time updates
- Read receipts and typing indicators
- Presence (online/away/busy/offline) and the stale presence sweeper

Related apps:
    - authentication: User model
    - connections: Only connected users may message each other

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import MessageService

    result = MessageService.send_message(
        sender=user,
        receiver_id=other_user.id,
        content="Hello!",
    )
"""
