"""
WebSocket Event Handlers

Maps every socket.io event onto a room service action. Each handler's
return value is the acknowledgement sent back to the caller.
"""

from flask import request

from ..services.room_service import get_room_service
from ..utils.decorators import socket_action
from ..utils.game_logger import game_logger


def _service():
    room_service = get_room_service()
    if room_service is None:
        raise RuntimeError("Room service unavailable")
    return room_service


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    @socketio.on('connect')
    def handle_connect():
        """Handle WebSocket connection."""
        game_logger.logger.debug(f"Connection opened: {request.sid}")

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        """Free the seat of a dropped connection, keeping a rejoin slot."""
        room_service = get_room_service()
        if not room_service:
            return
        try:
            room_service.disconnect(request.sid)
        except Exception as e:
            game_logger.log_error(request.sid, e, 'disconnect')

    @socketio.on('host:create')
    @socket_action('host:create')
    def handle_create_room(action, sid):
        return _service().create_room(sid, action.display_name, action.settings)

    @socketio.on('player:join')
    @socket_action('player:join')
    def handle_join_room(action, sid):
        return _service().join_room(sid, action.code, action.display_name)

    @socketio.on('player:rejoin')
    @socket_action('player:rejoin')
    def handle_rejoin(action, sid):
        return _service().rejoin(sid, action.code, action.display_name)

    @socketio.on('player:ready')
    @socket_action('player:ready')
    def handle_set_ready(action, sid):
        return _service().set_ready(sid, action.code, action.ready)

    @socketio.on('player:leave')
    @socket_action('player:leave')
    def handle_leave_room(action, sid):
        return _service().leave_room(sid, action.code)

    @socketio.on('host:settings')
    @socket_action('host:settings')
    def handle_update_settings(action, sid):
        return _service().update_settings(sid, action.code, action.patch)

    @socketio.on('host:start')
    @socket_action('host:start')
    def handle_start_game(action, sid):
        return _service().start_game(sid, action.code)

    @socketio.on('host:forceNextTurn')
    @socket_action('host:forceNextTurn')
    def handle_force_next_turn(action, sid):
        return _service().force_next_turn(sid, action.code)

    @socketio.on('host:forceRestart')
    @socket_action('host:forceRestart')
    def handle_force_restart(action, sid):
        return _service().force_restart(sid, action.code)

    @socketio.on('host:close')
    @socket_action('host:close')
    def handle_close_room(action, sid):
        return _service().close_room(sid, action.code)

    @socketio.on('hint:submit')
    @socket_action('hint:submit')
    def handle_submit_hint(action, sid):
        return _service().submit_hint(sid, action.code, action.text)

    @socketio.on('vote:cast')
    @socket_action('vote:cast')
    def handle_cast_vote(action, sid):
        return _service().cast_vote(sid, action.code, action.target)

    @socketio.on('chat:send')
    @socket_action('chat:send')
    def handle_send_chat(action, sid):
        return _service().send_chat(sid, action.code, action.text)

    @socketio.on('rooms:list')
    @socket_action('rooms:list')
    def handle_list_rooms(action, sid):
        return _service().list_rooms(action.filter)

    @socketio.on('rooms:watch')
    @socket_action('rooms:watch')
    def handle_watch_rooms(action, sid):
        return _service().watch_rooms(sid, action.filter)

    @socketio.on('rooms:unwatch')
    @socket_action('rooms:unwatch')
    def handle_unwatch_rooms(action, sid):
        return _service().unwatch_rooms(sid)
