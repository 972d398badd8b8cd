"""
Socket Handler Decorators

Contains the decorator that turns a raw socket event into a validated action.
"""

from functools import wraps
from flask import request

from ..errors import ActionRejected, INTERNAL_ERROR
from ..models.actions import parse_action
from .game_logger import game_logger


def socket_action(event_name):
    """
    Decorator for WebSocket action handlers.

    Parses the payload into its action variant, injects it together with the
    caller's connection handle, logs the action and its acknowledgement and
    converts every failure into an ``{'ok': False, 'error': ...}`` ack.
    The wrapped handler's return value is sent back as the socket.io ack.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(data=None, *args):
            sid = request.sid
            room_code = data.get('code') if isinstance(data, dict) else None
            game_logger.log_user_action(sid, event_name, room_code)

            try:
                action = parse_action(event_name, data)
                result = f(action, sid=sid)
            except ActionRejected as rejected:
                result = rejected.to_ack()
            except Exception as e:
                game_logger.log_error(sid, e, event_name, room_code)
                result = {'ok': False, 'error': INTERNAL_ERROR}

            success = result.get('ok', False) if isinstance(result, dict) else True
            game_logger.log_server_response(sid, event_name, success, result, room_code)
            return result

        return decorated_function
    return decorator
