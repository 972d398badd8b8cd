"""
Janitor

Background sweep that purges expired rejoin slots and closes empty, idle
or over-long rooms.
"""

import threading
from typing import Dict, Optional

from ..config import Config
from ..models.events import Outbox
from ..models.room import Phase, Room
from ..utils.game_logger import game_logger


class Janitor:
    """
    Periodic room maintenance.

    Policies, applied per room under its lock:
    - expired ghost slots are purged (and the end conditions re-checked
      for a game in progress, since the held seat is gone for good)
    - rooms without players are closed
    - LOBBY rooms without player activity for LOBBY_IDLE_SECONDS are closed
    - rooms whose game started more than MAX_GAME_SECONDS ago are closed,
      whatever their activity
    """

    def __init__(self, room_service, config=Config):
        self.room_service = room_service
        self.config = config
        self.interval = config.JANITOR_INTERVAL_SECONDS
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _sweep_room(self, room: Room, outbox: Outbox) -> Dict[str, int]:
        now = self.room_service.clock()
        machine = self.room_service.machine

        expired = [key for key, ghost in room.ghosts.items() if ghost.expires_at <= now]
        for key in expired:
            del room.ghosts[key]
        if expired and room.phase in (Phase.HINT, Phase.VOTE):
            machine.check_end(room, outbox)

        reason = None
        if not room.players:
            reason = 'empty'
        elif room.phase == Phase.LOBBY and now - room.last_activity >= self.config.LOBBY_IDLE_SECONDS:
            reason = 'idle'
        elif (room.phase in (Phase.HINT, Phase.VOTE, Phase.GAME_OVER)
              and room.game_started_at is not None
              and now - room.game_started_at >= self.config.MAX_GAME_SECONDS):
            reason = 'game_time_exceeded'

        if reason:
            self.room_service.close_locked(room, outbox, reason)

        return {'ghosts_purged': len(expired), 'rooms_closed': 1 if reason else 0}

    def sweep(self) -> Dict[str, int]:
        """
        Run every policy once over all rooms.

        Returns:
            Counters of purged ghost slots and closed rooms
        """
        stats = {'ghosts_purged': 0, 'rooms_closed': 0}
        for code in self.room_service.room_codes():
            try:
                result = self.room_service.run_locked(code, self._sweep_room)
            except Exception as e:
                game_logger.log_error(None, e, 'janitor_sweep', code)
                continue
            if result:
                stats['ghosts_purged'] += result['ghosts_purged']
                stats['rooms_closed'] += result['rooms_closed']

        if stats['ghosts_purged'] or stats['rooms_closed']:
            game_logger.log_game_event(None, 'janitor_sweep', **stats)
        return stats

    def _run(self) -> None:
        game_logger.logger.info(f"Janitor started - sweeping every {self.interval} seconds")
        while not self._stop.wait(self.interval):
            try:
                self.sweep()
            except Exception as e:
                game_logger.logger.error(f"Error in janitor worker: {e}")

    def start(self) -> threading.Thread:
        if self._thread is None or not self._thread.is_alive():
            self._stop.clear()
            self._thread = threading.Thread(target=self._run, name='room-janitor', daemon=True)
            self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None
