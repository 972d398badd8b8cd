"""
Impostor Party Game Server Application Package

Real-time room server for a social deduction party game: rooms, turn-based
hints, voting, a public room directory and a background janitor.
"""

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from .config import Config


def create_app(config_class=Config):
    """
    Application factory pattern for creating Flask app instances.

    Args:
        config_class: Configuration class to use

    Returns:
        Tuple of (Flask application, SocketIO instance)
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    CORS(app, origins=config_class.CORS_ORIGINS)
    socketio = SocketIO(
        app,
        async_mode='threading',
        cors_allowed_origins=config_class.CORS_ORIGINS,
        logger=False,
        engineio_logger=False
    )

    # Room service publishes through this socket.io instance
    from .services.room_service import get_room_service, initialize_room_service
    from .websocket.broadcaster import SocketIOBroadcaster

    room_service = get_room_service() or initialize_room_service(config_class)
    room_service.broadcaster = SocketIOBroadcaster(socketio)

    # Register blueprints
    from .controllers.lobby_controller import lobby_bp
    app.register_blueprint(lobby_bp, url_prefix='/api')

    # Register WebSocket handlers
    from .websocket.handlers import register_websocket_handlers
    register_websocket_handlers(socketio)

    # Store socketio instance for use in other modules
    app.socketio = socketio

    return app, socketio
