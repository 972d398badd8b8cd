"""
Timer Scheduler

Server-authoritative deadlines (turn timeouts, vote deadlines) are
cancellable scheduled callbacks, never blocking waits.
"""

import threading
from typing import Any, Callable


class TimerScheduler:
    """Schedules callbacks on daemon ``threading.Timer`` threads."""

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> threading.Timer:
        timer = threading.Timer(max(0.0, delay), callback, args=args)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()
