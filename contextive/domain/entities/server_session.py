import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ServerState(Enum):
    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass
class ServerSession:
    """Live binding of one transport to the registry and dispatcher.

    Tracks the shutdown flag and the number of in-flight invocations. The
    counter is the only state mutated concurrently, so every access goes
    through the lock. The shutdown flag is flipped by the lifecycle manager
    only, via ``begin_shutdown``.
    """

    transport_mode: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _in_flight: int = field(default=0, init=False, repr=False)
    _shutting_down: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _idle: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    def __post_init__(self) -> None:
        self._idle.set()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def is_shutting_down(self) -> bool:
        with self._lock:
            return self._shutting_down

    def try_acquire(self) -> bool:
        """Register a new in-flight invocation unless shutdown has begun."""
        with self._lock:
            if self._shutting_down:
                return False
            self._in_flight += 1
            self._idle.clear()
            return True

    def release(self) -> None:
        """Mark one in-flight invocation as finished."""
        with self._lock:
            if self._in_flight == 0:
                return
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    def begin_shutdown(self) -> bool:
        """Flip the shutdown flag. Returns False if it was already set."""
        with self._lock:
            if self._shutting_down:
                return False
            self._shutting_down = True
            return True

    async def wait_idle(self, timeout: float) -> bool:
        """Wait until no invocation is in flight. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
