"""
Socket.IO Broadcaster

Delivers an Outbox to its recipients, one emit per connection.
"""

from ..models.events import Outbox


class SocketIOBroadcaster:
    def __init__(self, socketio):
        self.socketio = socketio

    def publish(self, outbox: Outbox) -> None:
        for event in outbox:
            for sid in event.recipients:
                self.socketio.emit(event.name, event.payload, to=sid)
