"""
Utilities Package

Contains utility functions, decorators, and helper modules.
"""

from .decorators import socket_action
from .helpers import sanitize_text, make_room_code
from .game_logger import game_logger

__all__ = ['socket_action', 'sanitize_text', 'make_room_code', 'game_logger']
