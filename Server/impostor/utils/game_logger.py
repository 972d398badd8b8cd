"""
Game Logger Module for the Impostor Server

This module provides structured logging for inbound actions, acknowledgements
and room lifecycle events.
"""

import logging
import json
import os
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path


class GameLogger:
    """
    Centralized logging system for the game server.

    Features:
    - Inbound action tracking per connection
    - Acknowledgement logging (secrets never written)
    - Room/game event logging (phase changes, eliminations, janitor closures)
    - JSON structured logs for easy parsing
    """

    def __init__(self, log_dir: str = "logs", level: str = "INFO"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = getattr(logging, str(level).upper(), logging.INFO)

        # Setup main game logger
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """Setup the main game logger with file handler."""
        logger = logging.getLogger('impostor_game')
        logger.setLevel(self.level)

        # Prevent duplicate handlers
        if logger.handlers:
            logger.handlers.clear()

        # Create log file with date
        log_file = self.log_dir / f"game_log_{datetime.now().strftime('%Y-%m-%d')}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(self.level)

        # Console only shows warnings and errors
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)

        file_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_formatter = logging.Formatter(
            '%(levelname)s: %(message)s'
        )

        file_handler.setFormatter(file_formatter)
        console_handler.setFormatter(console_formatter)

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)

        return logger

    def _create_log_entry(self,
                          event_type: str,
                          action: str,
                          connection: Optional[str],
                          details: Dict[str, Any]) -> str:
        """Create a structured log entry."""
        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'event_type': event_type,
            'action': action,
            'connection': connection,
            'details': details
        }
        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def log_user_action(self,
                        sid: Optional[str],
                        action: str,
                        room_code: Optional[str] = None,
                        **kwargs):
        """
        Log an inbound action.

        Args:
            sid: Connection handle of the caller
            action: Socket event name (e.g. 'player:join', 'vote:cast')
            room_code: Room code if applicable
            **kwargs: Additional details to log
        """
        details = {'room_code': room_code, **kwargs}
        self.logger.info(self._create_log_entry('USER_ACTION', action, sid, details))

    def log_server_response(self,
                            sid: Optional[str],
                            action: str,
                            success: bool,
                            response_data: Any,
                            room_code: Optional[str] = None,
                            **kwargs):
        """
        Log the acknowledgement returned for an action.

        Failed acknowledgements are logged at ERROR level.
        """
        details = {
            'room_code': room_code,
            'success': success,
            'response_data': self._sanitize_response_data(response_data),
            **kwargs
        }

        event_type = 'SERVER_RESPONSE_SUCCESS' if success else 'SERVER_RESPONSE_ERROR'
        log_message = self._create_log_entry(event_type, action, sid, details)

        if success:
            self.logger.info(log_message)
        else:
            self.logger.error(log_message)

    def log_game_event(self,
                       room_code: Optional[str],
                       event: str,
                       actor: str = 'system',
                       **kwargs):
        """
        Log room lifecycle events.

        Args:
            room_code: Room code
            event: Type of event (e.g. 'phase_changed', 'player_eliminated', 'room_closed')
            actor: Connection handle, or 'system' for timers and the janitor
            **kwargs: Additional details
        """
        details = {'room_code': room_code, **kwargs}
        self.logger.info(self._create_log_entry('GAME_EVENT', event, actor, details))

    def log_error(self,
                  sid: Optional[str],
                  error: Exception,
                  action: str,
                  room_code: Optional[str] = None):
        """Log an unexpected exception with its context."""
        details = {
            'room_code': room_code,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'action': action
        }
        log_message = self._create_log_entry('ERROR', action, sid, details)
        self.logger.error(log_message, exc_info=error)

    def _sanitize_response_data(self, data: Any) -> Any:
        """Never log the secret; summarise bulky room snapshots."""
        if isinstance(data, list):
            return {'items': len(data)}
        if not isinstance(data, dict):
            return {'data_type': type(data).__name__}

        sanitized = data.copy()
        sanitized.pop('secretPlayer', None)
        if 'state' in sanitized and isinstance(sanitized['state'], dict):
            state = sanitized['state']
            sanitized['state'] = {
                'phase': state.get('phase'),
                'round': state.get('round'),
                'players_count': len(state.get('players', [])),
                'winners': state.get('winners')
            }
        if 'rooms' in sanitized and isinstance(sanitized['rooms'], list):
            sanitized['rooms'] = len(sanitized['rooms'])

        return sanitized

    def get_log_stats(self) -> Dict[str, Any]:
        """Get statistics about logged events (useful for monitoring)."""
        try:
            log_file = self.log_dir / f"game_log_{datetime.now().strftime('%Y-%m-%d')}.log"
            if not log_file.exists():
                return {'error': 'No log file found for today'}

            stats = {
                'log_file': str(log_file),
                'file_size_mb': round(log_file.stat().st_size / (1024 * 1024), 2),
                'total_entries': 0,
                'user_actions': 0,
                'server_responses': 0,
                'game_events': 0,
                'errors': 0
            }

            with open(log_file, 'r', encoding='utf-8') as f:
                for line in f:
                    if line.strip():
                        stats['total_entries'] += 1
                        if 'USER_ACTION' in line:
                            stats['user_actions'] += 1
                        elif 'SERVER_RESPONSE' in line:
                            stats['server_responses'] += 1
                        elif 'GAME_EVENT' in line:
                            stats['game_events'] += 1
                        elif 'ERROR' in line:
                            stats['errors'] += 1

            return stats

        except OSError as e:
            return {'error': f'Failed to get stats: {str(e)}'}


# Global logger instance
game_logger = GameLogger(os.getenv('LOG_DIR', 'logs'), os.getenv('LOG_LEVEL', 'INFO'))
