"""
WebSocket Package

Socket.IO event handlers and the broadcaster that delivers room events.
"""

from .broadcaster import SocketIOBroadcaster
from .handlers import register_websocket_handlers

__all__ = ['SocketIOBroadcaster', 'register_websocket_handlers']
