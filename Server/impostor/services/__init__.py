"""
Services Package

Contains all business logic and service classes.
"""

from .room_service import RoomService, get_room_service, initialize_room_service
from .room_machine import RoomMachine
from .directory_service import RoomDirectory
from .connection_registry import ConnectionRegistry
from .janitor import Janitor
from .scheduler import TimerScheduler

__all__ = [
    'RoomService', 'get_room_service', 'initialize_room_service',
    'RoomMachine', 'RoomDirectory', 'ConnectionRegistry', 'Janitor', 'TimerScheduler'
]
