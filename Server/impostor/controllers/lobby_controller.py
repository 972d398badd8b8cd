"""
Lobby Controller

Read-only HTTP endpoints for the public room directory.
"""

from flask import Blueprint, request, jsonify

from ..errors import ValidationError
from ..models.actions import normalize_code
from ..models.directory import RoomFilter
from ..services.room_service import get_room_service
from ..utils.game_logger import game_logger

lobby_bp = Blueprint('lobby', __name__)


def _service_unavailable():
    return jsonify({
        'success': False,
        'error': 'Room service unavailable'
    }), 500


@lobby_bp.route('/rooms', methods=['GET'])
def list_rooms():
    """List public rooms. Query: region (or 'any'), open=1 for joinable rooms only."""
    room_service = get_room_service()
    if not room_service:
        return _service_unavailable()

    room_filter = RoomFilter.from_payload(request.args.to_dict())
    rooms = room_service.list_rooms(room_filter)
    return jsonify({'success': True, 'rooms': rooms})


@lobby_bp.route('/rooms/<code>', methods=['GET'])
def get_room(code):
    """Public snapshot of a room. Never includes the secret before GAME_OVER."""
    room_service = get_room_service()
    if not room_service:
        return _service_unavailable()

    try:
        code = normalize_code(code)
    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400

    snapshot = room_service.get_snapshot(code)
    if snapshot is None:
        return jsonify({'success': False, 'error': 'not found'}), 404
    return jsonify({'success': True, 'state': snapshot})


@lobby_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    room_service = get_room_service()
    game_logger.log_user_action(request.remote_addr, 'health_check')

    response_data = {
        'status': 'healthy' if room_service else 'degraded',
        'rooms': len(room_service.room_codes()) if room_service else 0,
        'connections': len(room_service.registry) if room_service else 0,
        'watchers': room_service.directory.watcher_count() if room_service else 0,
        'log_stats': game_logger.get_log_stats()
    }
    game_logger.log_server_response(request.remote_addr, 'health_check', True, response_data)
    return jsonify(response_data)
