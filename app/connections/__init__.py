"""
Connections app - the social graph between users.

Users send connection requests and the receiver accepts or rejects them.
An accepted connection is the precondition for direct messaging in the
chat app (see ConnectionService.are_connected).

Usage:
    from connections.services import ConnectionService

    result = ConnectionService.send_request(requester=user, receiver_id=7)
"""
