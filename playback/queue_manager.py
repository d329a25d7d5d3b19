"""
Up-next queue for the player.
Songs queued here play before the playlist advances.
"""

import logging
import threading
from collections import deque
from typing import Callable, Deque, List, Optional

from shared.models import Song

logger = logging.getLogger(__name__)


class UpNextQueue:
    """
    FIFO "play next" queue, independent of the playlist.
    Session-based - the queue clears when the application exits.
    """

    def __init__(self):
        self._queue: Deque[Song] = deque()
        self._lock = threading.Lock()
        self._on_change_callbacks: List[Callable[[], None]] = []

    def enqueue(self, song: Song) -> None:
        """Add a song to the end of the queue."""
        with self._lock:
            self._queue.append(song)
            logger.info(f"Added to up next: {song.title} by {song.artist}")
        self._notify_change()

    def dequeue_front(self) -> Optional[Song]:
        """
        Remove and return the head of the queue.
        Returns None if the queue is empty.
        """
        with self._lock:
            if not self._queue:
                return None
            song = self._queue.popleft()
            logger.debug(f"Dequeued: {song.title}")
        self._notify_change()
        return song

    def peek(self) -> Optional[Song]:
        """View the head of the queue without removing it."""
        with self._lock:
            return self._queue[0] if self._queue else None

    def get_all(self) -> List[Song]:
        """Get a copy of all queued songs."""
        with self._lock:
            return list(self._queue)

    def remove_at(self, index: int) -> bool:
        """
        Remove the song at the given position.
        Returns True if successful, False if index out of range.
        """
        with self._lock:
            if not 0 <= index < len(self._queue):
                return False
            removed = self._queue[index]
            del self._queue[index]
            logger.info(f"Removed from up next: {removed.title}")
        self._notify_change()
        return True

    def move(self, from_index: int, to_index: int) -> bool:
        """
        Move a song from one position to another.
        Returns True if successful, False otherwise.
        """
        with self._lock:
            size = len(self._queue)
            if not (0 <= from_index < size and 0 <= to_index < size):
                return False
            song = self._queue[from_index]
            del self._queue[from_index]
            self._queue.insert(to_index, song)
        self._notify_change()
        return True

    def clear(self) -> None:
        """Clear all songs from the queue."""
        with self._lock:
            count = len(self._queue)
            self._queue.clear()
            logger.info(f"Up next cleared ({count} songs removed)")
        self._notify_change()

    def is_empty(self) -> bool:
        with self._lock:
            return not self._queue

    def size(self) -> int:
        with self._lock:
            return len(self._queue)

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when the queue changes."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a queue change callback."""
        if callback in self._on_change_callbacks:
            self._on_change_callbacks.remove(callback)

    def _notify_change(self) -> None:
        for callback in list(self._on_change_callbacks):
            try:
                callback()
            except Exception:
                logger.exception("Error in up-next change callback")
