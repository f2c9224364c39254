"""Notification subsystem adapters.

- NullNotificationBackend: platforms without a notification subsystem (web);
  every call is a no-op.
- LocalNotificationBackend: in-process scheduler. One daemon "tick" thread wakes
  periodically and fires each recurring trigger whose HH:MM matches the local
  wall clock, at most once per calendar minute.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from habitloop.config import Platform
from habitloop.errors import ExternalSubsystemError

logger = logging.getLogger(__name__)


class NotificationBackend(Protocol):
    supported: bool

    def request_permission(self) -> bool:
        ...

    def cancel_all(self) -> None:
        ...

    def schedule_recurring(self, hour: int, minute: int, title: str, body: str) -> Optional[str]:
        ...


@dataclass
class RecurringTrigger:
    handle: str
    hour: int
    minute: int
    title: str
    body: str
    last_fired: Optional[str] = None  # "YYYY-MM-DD HH:MM" of the last delivery


class NullNotificationBackend:
    """Backend for platforms with no notification subsystem."""

    supported = False

    def request_permission(self) -> bool:
        return True

    def cancel_all(self) -> None:
        return None

    def schedule_recurring(self, hour: int, minute: int, title: str, body: str) -> Optional[str]:
        return None


def _log_delivery(trigger: RecurringTrigger) -> None:
    logger.info(f"Reminder: {trigger.title} - {trigger.body}")


class LocalNotificationBackend:
    """In-process recurring daily triggers driven by a background tick thread."""

    supported = True

    def __init__(
        self,
        on_fire: Optional[Callable[[RecurringTrigger], None]] = None,
        tick_seconds: float = 1.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._triggers: Dict[str, RecurringTrigger] = {}
        self._lock = threading.Lock()
        self._running = threading.Event()
        self._wakeup = threading.Event()
        self._on_fire = on_fire or _log_delivery
        self._tick_seconds = tick_seconds
        self._clock = clock
        self._thread: Optional[threading.Thread] = None
        self.permission_granted = True

    # ---- lifecycle ----

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._running.set()
        self._wakeup.clear()
        self._thread = threading.Thread(target=self._tick_loop, daemon=True, name="reminder-ticker")
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the tick thread and wait for it to exit."""
        self._running.clear()
        self._wakeup.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    # ---- subsystem operations ----

    def request_permission(self) -> bool:
        return self.permission_granted

    def cancel_all(self) -> None:
        with self._lock:
            self._triggers.clear()

    def schedule_recurring(self, hour: int, minute: int, title: str, body: str) -> Optional[str]:
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ExternalSubsystemError(f"Invalid trigger time {hour}:{minute}")
        trigger = RecurringTrigger(handle=str(uuid.uuid4()), hour=hour, minute=minute, title=title, body=body)
        with self._lock:
            self._triggers[trigger.handle] = trigger
        return trigger.handle

    def scheduled(self) -> List[RecurringTrigger]:
        with self._lock:
            return list(self._triggers.values())

    # ---- internal ----

    def fire_due(self, now: Optional[datetime] = None) -> int:
        """Deliver every trigger matching now's HH:MM that hasn't fired this minute."""
        now = now or self._clock()
        stamp = now.strftime("%Y-%m-%d %H:%M")
        with self._lock:
            due = [
                t for t in self._triggers.values()
                if t.hour == now.hour and t.minute == now.minute and t.last_fired != stamp
            ]
            for t in due:
                t.last_fired = stamp
        for t in due:
            try:
                self._on_fire(t)
            except Exception as e:
                logger.error(f"Reminder delivery failed for {t.handle}: {type(e).__name__}: {str(e)}")
        return len(due)

    def _tick_loop(self) -> None:
        while self._running.is_set():
            self.fire_due()
            self._wakeup.wait(self._tick_seconds)


def build_backend(platform: Platform):
    """Pick the notification backend for the host platform."""
    if Platform(platform) == Platform.WEB:
        return NullNotificationBackend()
    return LocalNotificationBackend()
