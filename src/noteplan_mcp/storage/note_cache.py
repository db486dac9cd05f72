"""Time-bounded snapshot of every note in the store."""
import logging
import time
from threading import Lock
from typing import Callable, List, Optional

from noteplan_mcp.models.schema import Note

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5.0


class NoteCache:
    """Read-through cache over a full scan of the note tree.

    The snapshot is rebuilt wholesale when it is older than ``ttl`` seconds
    or after ``invalidate()``. Within the TTL window the very same list
    object is returned, so callers must treat it as read-only.
    """

    def __init__(
        self,
        loader: Callable[[], List[Note]],
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            loader: Produces every note (in any order) when a rebuild is due.
            ttl: Seconds a snapshot stays valid.
            clock: Monotonic time source, injectable for tests.
        """
        self._loader = loader
        self._ttl = ttl
        self._clock = clock
        self._notes: Optional[List[Note]] = None
        self._last_refresh: Optional[float] = None
        self._lock = Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def last_refresh(self) -> Optional[float]:
        return self._last_refresh

    def is_fresh(self) -> bool:
        if self._notes is None or self._last_refresh is None:
            return False
        return (self._clock() - self._last_refresh) < self._ttl

    def get_snapshot(self) -> List[Note]:
        """Return all notes, newest modification first."""
        with self._lock:
            if self.is_fresh():
                return self._notes  # type: ignore[return-value]

            started = time.perf_counter()
            notes = sorted(self._loader(), key=lambda n: n.modified, reverse=True)
            self._notes = notes
            self._last_refresh = self._clock()
            logger.debug(
                f"Note cache rebuilt: {len(notes)} notes in "
                f"{(time.perf_counter() - started) * 1000:.2f}ms"
            )
            return notes

    def invalidate(self) -> None:
        """Drop the snapshot so the next read rebuilds it."""
        with self._lock:
            self._notes = None
            self._last_refresh = None
