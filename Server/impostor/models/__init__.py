"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .room import Phase, Role, Winners, RoomStatus, Settings, Player, Hint, Ghost, Room
from .directory import DirectoryEntry, RoomFilter
from .events import Event, Outbox
from .actions import parse_action

__all__ = [
    'Phase', 'Role', 'Winners', 'RoomStatus', 'Settings', 'Player', 'Hint', 'Ghost', 'Room',
    'DirectoryEntry', 'RoomFilter', 'Event', 'Outbox', 'parse_action'
]
