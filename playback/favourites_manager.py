"""
Favorites store for the player.
Keeps favorite song IDs in memory and writes them through to a key-value store.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, Set
import json
import logging
import threading

from shared.constants import FAVORITES_STORAGE_KEY
from shared.errors import PersistenceWriteFailure
from shared.models import Song
from shared.storage import KeyValueStore

logger = logging.getLogger(__name__)


class FavoritesStore:
    """
    Manages favorite songs, identified by their ID.

    The in-memory set is authoritative for the running session. Every
    mutation schedules a background write of the whole set; a failed write
    is logged and simply superseded by the next one.
    """

    def __init__(self, store: KeyValueStore, storage_key: str = FAVORITES_STORAGE_KEY):
        self._store = store
        self._storage_key = storage_key
        # dict keeps insertion order for the persisted list
        self._favorites: Dict[str, None] = {}
        # re-entrant: a write's done callback may fire while the lock is held
        self._lock = threading.RLock()
        self._on_change_callbacks: List[Callable[[], None]] = []
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="FavoritesWriter")
        self._pending: Set[Future] = set()

    def load(self) -> Set[str]:
        """
        Read favorites from storage. Called once at startup.
        Never raises: unreadable data yields an empty set.
        """
        try:
            raw = self._store.get(self._storage_key)
            ids = self._parse(raw)
        except Exception as e:
            logger.warning(f"Could not load favorites, starting fresh: {e}")
            ids = []

        with self._lock:
            self._favorites = dict.fromkeys(ids)
            loaded = set(self._favorites)
        logger.info(f"Loaded {len(loaded)} favorites")
        self._notify_change()
        return loaded

    @staticmethod
    def _parse(raw: Optional[str]) -> List[str]:
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("favorites entry is not a list")
        return [str(song_id) for song_id in data]

    def toggle(self, song_id: str) -> bool:
        """
        Toggle favorite status of a song.
        Returns True if now favorited, False if unfavorited.
        """
        with self._lock:
            if song_id in self._favorites:
                del self._favorites[song_id]
                now_favorite = False
            else:
                self._favorites[song_id] = None
                now_favorite = True
            self._schedule_write(list(self._favorites))
        logger.info(f"Toggled {'ON' if now_favorite else 'OFF'} favorite: {song_id}")
        self._notify_change()
        return now_favorite

    def is_favorite(self, song_id: str) -> bool:
        with self._lock:
            return song_id in self._favorites

    def get_all(self) -> List[str]:
        """Get favorite IDs in the order they were added."""
        with self._lock:
            return list(self._favorites)

    def size(self) -> int:
        with self._lock:
            return len(self._favorites)

    def list_favorites(self, catalog: Iterable[Song]) -> List[Song]:
        """Filter the catalog down to favorites, keeping catalog order."""
        with self._lock:
            favorites = set(self._favorites)
        return [song for song in catalog if song.id in favorites]

    def wait_for_pending_writes(self, timeout: Optional[float] = None) -> None:
        """Block until every scheduled write has finished."""
        with self._lock:
            pending = set(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        """Flush outstanding writes and stop the writer thread."""
        self._writer.shutdown(wait=True)

    def _schedule_write(self, ids: List[str]) -> None:
        # Caller holds the lock, so writes are queued in mutation order
        try:
            future = self._writer.submit(self._write, ids)
        except RuntimeError as e:
            logger.error(f"Favorites not saved, store is closed: {e}")
            return
        self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _write(self, ids: List[str]) -> None:
        try:
            self._store.set(self._storage_key, json.dumps(ids))
            logger.debug(f"Saved {len(ids)} favorites")
        except PersistenceWriteFailure as e:
            logger.error(f"Error saving favorites: {e}")
        except Exception:
            logger.exception("Unexpected error saving favorites")

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when favorites change."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._on_change_callbacks:
            self._on_change_callbacks.remove(callback)

    def _notify_change(self) -> None:
        for callback in list(self._on_change_callbacks):
            try:
                callback()
            except Exception:
                logger.exception("Error in favorites change callback")
