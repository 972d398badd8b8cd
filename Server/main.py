"""
Impostor Game Server - Main Entry Point

This is the main entry point for the impostor party game server.
It initializes all services and starts the Flask-SocketIO application.
"""

from impostor import create_app
from impostor.config import Config, validate_secret_pool_integrity
from impostor.services.janitor import Janitor
from impostor.services.room_service import initialize_room_service
from impostor.utils.game_logger import game_logger


def main():
    """Main function to initialize services and start the server."""
    janitor = None
    try:
        print("Initializing services...")

        validate_secret_pool_integrity()
        print("✓ Secret pool validated")

        room_service = initialize_room_service(Config)
        print("✓ Room service initialized successfully")

        # Create Flask app
        print("Creating Flask application...")
        app, socketio = create_app(Config)
        print("✓ Flask application created successfully")

        # Start janitor in background thread
        janitor = Janitor(room_service, Config)
        janitor.start()
        print(f"✓ Janitor started - sweeping every {Config.JANITOR_INTERVAL_SECONDS} seconds")

        game_logger.logger.info("Impostor Server Starting - room directory, turn timers and janitor enabled")

        print(f"\nStarting Impostor Game Server on {Config.HOST}:{Config.PORT}")
        print(f"Debug mode: {Config.DEBUG}")
        print("=" * 50)

        socketio.run(app, host=Config.HOST, port=Config.PORT, debug=Config.DEBUG,
                     allow_unsafe_werkzeug=True)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        game_logger.logger.info("Impostor Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        game_logger.logger.error(f"Error starting server: {e}")
        raise
    finally:
        if janitor is not None:
            janitor.stop()


if __name__ == '__main__':
    main()
