"""
Playback controller.

Owns the single live audio resource and every piece of playback state:
playlist, current index, shuffle/repeat, up-next queue and telemetry.
All transitions run on the command loop. Public methods only post a
message and return its future, so they never raise and never block.

Resource swaps follow one protocol: bump the generation token, release the
old resource without waiting, request the new one tagged with the token,
and install it only if the token is still current once it resolves.
Anything tagged with an older token is released or ignored.
"""

import logging
import random
import threading
from concurrent.futures import Future
from typing import Callable, Iterable, List, Optional

from playback.catalog import CatalogService
from playback.command_loop import CommandLoop
from playback.engine import AudioEngine, AudioResource
from playback.favourites_manager import FavoritesStore
from playback.navigator import compute_next, compute_previous
from playback.queue_manager import UpNextQueue
from shared.constants import DEFAULT_VOLUME, MAX_VOLUME, MIN_VOLUME
from shared.errors import ResourceLoadFailure, StaleEventDiscarded
from shared.models import (
    PlaybackSession,
    PlaybackStatus,
    PlayerSnapshot,
    RepeatMode,
    Song,
)

logger = logging.getLogger(__name__)

Listener = Callable[[PlayerSnapshot], None]


class PlaybackController:
    """Service object shared by every front end; construct once per process."""

    def __init__(
        self,
        engine: AudioEngine,
        catalog: CatalogService,
        favorites: FavoritesStore,
        up_next: Optional[UpNextQueue] = None,
        loop: Optional[CommandLoop] = None,
        volume: float = DEFAULT_VOLUME,
        rng: Optional[random.Random] = None,
    ):
        self._engine = engine
        self._catalog = catalog
        self._favorites = favorites
        self._up_next = up_next or UpNextQueue()
        self.loop = loop or CommandLoop()
        self._rng = rng or random.Random()

        # Written only on the loop thread; the lock keeps readers consistent
        self._lock = threading.RLock()
        self._session = PlaybackSession(volume=_clamp_volume(volume))
        self._status = PlaybackStatus.EMPTY
        self._current_song: Optional[Song] = None
        self._playlist: List[Song] = []
        self._current_index = 0
        self._shuffled = False
        self._repeat_mode = RepeatMode.NONE
        self._listeners: List[Listener] = []
        # Cleared by pause() while a load is in flight
        self._play_when_ready = False
        self._closed = False

        self._engine.set_event_handlers(self._post_position_update, self._post_completed)
        self._up_next.add_change_callback(self._notify)
        self._favorites.add_change_callback(self._notify)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run the command loop on its own thread."""
        self.loop.start()

    def initialize(self) -> Future:
        """Load favorites and the catalog, and show the first song."""
        return self._post(self._do_initialize)

    def shutdown(self) -> None:
        """
        Release the live resource and flush pending favorite writes.

        Loads still in flight are released as soon as they resolve.
        """
        self._post(self._release_live)
        self.loop.stop()
        with self._lock:
            self._closed = True
        # Messages posted before the flag was set; all of them are stale now
        self.loop.run_pending()
        self._favorites.close()
        self._engine.shutdown()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def snapshot(self) -> PlayerSnapshot:
        with self._lock:
            return PlayerSnapshot(
                status=self._status,
                current_song=self._current_song,
                is_playing=self._session.is_playing,
                current_time=self._session.position,
                duration=self._session.duration,
                volume=self._session.volume,
                playlist=list(self._playlist),
                current_index=self._current_index,
                shuffled=self._shuffled,
                repeat_mode=self._repeat_mode,
                up_next=self._up_next.get_all(),
                favorite_ids=frozenset(self._favorites.get_all()),
            )

    @property
    def status(self) -> PlaybackStatus:
        with self._lock:
            return self._status

    @property
    def current_song(self) -> Optional[Song]:
        with self._lock:
            return self._current_song

    @property
    def is_playing(self) -> bool:
        with self._lock:
            return self._session.is_playing

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._session.position

    @property
    def duration(self) -> float:
        with self._lock:
            return self._session.duration

    @property
    def volume(self) -> float:
        with self._lock:
            return self._session.volume

    @property
    def playlist(self) -> List[Song]:
        with self._lock:
            return list(self._playlist)

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._current_index

    @property
    def shuffled(self) -> bool:
        with self._lock:
            return self._shuffled

    @property
    def repeat_mode(self) -> RepeatMode:
        with self._lock:
            return self._repeat_mode

    @property
    def up_next(self) -> List[Song]:
        return self._up_next.get_all()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._session.generation

    @property
    def live_resource(self) -> Optional[AudioResource]:
        with self._lock:
            return self._session.handle

    # ------------------------------------------------------------------
    # Transport commands
    # ------------------------------------------------------------------

    def play(self) -> Future:
        return self._post(self._do_play)

    def pause(self) -> Future:
        return self._post(self._do_pause)

    def toggle_play_pause(self) -> Future:
        return self._post(self._do_toggle_play_pause)

    def seek(self, target_seconds: float) -> Future:
        return self._post(self._do_seek, target_seconds)

    def next(self) -> Future:
        return self._post(self._do_next)

    def previous(self) -> Future:
        return self._post(self._do_previous)

    def play_from_playlist(self, index: int) -> Future:
        return self._post(self._do_play_from_playlist, index)

    def load_and_play(self, song: Song) -> Future:
        """Play ``song`` without touching the playlist or current index."""
        return self._post(self._do_load_and_play, song)

    def set_playlist(self, songs: Iterable[Song]) -> Future:
        return self._post(self._do_set_playlist, list(songs))

    def toggle_shuffle(self) -> Future:
        return self._post(self._do_set_shuffle, None)

    def set_shuffle(self, shuffled: bool) -> Future:
        return self._post(self._do_set_shuffle, bool(shuffled))

    def set_repeat_mode(self, mode: RepeatMode) -> Future:
        return self._post(self._do_set_repeat_mode, mode)

    def set_volume(self, value: float) -> Future:
        return self._post(self._do_set_volume, value)

    # ------------------------------------------------------------------
    # Up-next queue and favorites (synchronous)
    # ------------------------------------------------------------------

    def add_to_up_next(self, song: Song) -> None:
        self._up_next.enqueue(song)

    def remove_from_up_next(self, index: int) -> bool:
        return self._up_next.remove_at(index)

    def clear_up_next(self) -> None:
        self._up_next.clear()

    def toggle_favorite(self, song_id: str) -> bool:
        return self._favorites.toggle(song_id)

    def is_favorite(self, song_id: str) -> bool:
        return self._favorites.is_favorite(song_id)

    def favorite_songs(self) -> List[Song]:
        """Favorite songs in catalog order."""
        return self._favorites.list_favorites(self._catalog.fetch_catalog())

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a callable that receives a snapshot after every change."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Error in playback listener")

    # ------------------------------------------------------------------
    # Loop-side handlers
    # ------------------------------------------------------------------

    def _post(self, fn, *args) -> Future:
        return self.loop.submit(self._apply, fn, args)

    def _apply(self, fn, args):
        result = fn(*args)
        self._notify()
        return result

    def _do_initialize(self) -> None:
        self._favorites.load()
        songs = self._catalog.fetch_catalog()
        with self._lock:
            self._playlist = list(songs)
            self._current_index = 0
            if songs and self._current_song is None:
                self._current_song = songs[0]
                self._session.duration = float(songs[0].duration or 0)
        logger.info(f"Initialized with {len(songs)} songs")

    def _do_play(self) -> None:
        with self._lock:
            handle = self._session.handle
            status = self._status
        if handle is not None:
            if status is PlaybackStatus.STOPPED:
                # Finished at the end of the playlist: start the last song over
                self._engine_call("seek", handle, 0.0)
                with self._lock:
                    self._session.position = 0.0
            self._engine_call("play", handle)
            with self._lock:
                self._session.is_playing = True
                self._status = PlaybackStatus.PLAYING
            return
        if status is PlaybackStatus.LOADING:
            with self._lock:
                self._play_when_ready = True
            return

        song = self._song_to_resume()
        if song is None:
            logger.info("Nothing to play")
            return
        self._swap_to(song)

    def _song_to_resume(self) -> Optional[Song]:
        with self._lock:
            if 0 <= self._current_index < len(self._playlist):
                return self._playlist[self._current_index]
            if self._current_song is not None:
                return self._current_song
        catalog = self._catalog.fetch_catalog()
        return catalog[0] if catalog else None

    def _do_pause(self) -> None:
        with self._lock:
            handle = self._session.handle
            if handle is None:
                self._session.is_playing = False
                self._play_when_ready = False
                return
        self._engine_call("pause", handle)
        with self._lock:
            self._session.is_playing = False
            if self._status is PlaybackStatus.PLAYING:
                self._status = PlaybackStatus.PAUSED

    def _do_toggle_play_pause(self) -> None:
        with self._lock:
            if self._status is PlaybackStatus.LOADING:
                playing = self._play_when_ready
            else:
                playing = self._session.is_playing
        if playing:
            self._do_pause()
        else:
            self._do_play()

    def _do_seek(self, target_seconds: float) -> None:
        with self._lock:
            clamped = max(0.0, min(float(target_seconds), self._session.duration))
            self._session.position = clamped
            handle = self._session.handle
        if handle is not None:
            self._engine_call("seek", handle, clamped)

    def _do_next(self) -> None:
        queued = self._up_next.dequeue_front()
        if queued is not None:
            logger.info(f"Playing from up next: {queued.title}")
            self._swap_to(queued)
            return

        with self._lock:
            outcome = compute_next(self._playlist, self._current_index,
                                   self._repeat_mode, self._shuffled, self._rng)
            if outcome.stop:
                handle = self._session.handle
                self._session.is_playing = False
                self._status = (PlaybackStatus.STOPPED if self._current_song
                                else PlaybackStatus.EMPTY)
                song = None
            else:
                self._current_index = outcome.index
                song = self._playlist[outcome.index]

        if song is None:
            logger.info("Reached the end of the playlist")
            if handle is not None:
                self._engine_call("pause", handle)
            return
        self._swap_to(song)

    def _do_previous(self) -> None:
        with self._lock:
            outcome = compute_previous(self._playlist, self._current_index, self._repeat_mode)
            if outcome.clamp_start:
                self._session.position = 0.0
                handle = self._session.handle
                song = None
            else:
                self._current_index = outcome.index
                song = self._playlist[outcome.index]

        if song is None:
            if handle is not None:
                self._engine_call("seek", handle, 0.0)
            return
        self._swap_to(song)

    def _do_play_from_playlist(self, index: int) -> None:
        with self._lock:
            if not 0 <= index < len(self._playlist):
                logger.debug(f"Ignoring out-of-range playlist index {index}")
                return
            self._current_index = index
            song = self._playlist[index]
        self._swap_to(song)

    def _do_load_and_play(self, song: Song) -> None:
        self._swap_to(song)

    def _do_set_playlist(self, songs: List[Song]) -> None:
        with self._lock:
            self._playlist = songs
            if not 0 <= self._current_index < len(songs):
                self._current_index = 0
        logger.info(f"Playlist set ({len(songs)} songs)")

    def _do_set_shuffle(self, shuffled: Optional[bool]) -> None:
        with self._lock:
            self._shuffled = (not self._shuffled) if shuffled is None else shuffled
            logger.info(f"Shuffle {'on' if self._shuffled else 'off'}")

    def _do_set_repeat_mode(self, mode) -> None:
        mode = RepeatMode(mode)
        with self._lock:
            self._repeat_mode = mode
        logger.info(f"Repeat mode: {mode.value}")

    def _do_set_volume(self, value: float) -> None:
        with self._lock:
            self._session.volume = _clamp_volume(value)
            volume = self._session.volume
            handle = self._session.handle
        if handle is not None:
            self._engine_call("set_volume", handle, volume)

    def _release_live(self) -> None:
        with self._lock:
            self._session.generation += 1
            handle = self._session.handle
            self._session.handle = None
            self._session.is_playing = False
        if handle is not None:
            self._release(handle)

    # ------------------------------------------------------------------
    # Resource lifecycle
    # ------------------------------------------------------------------

    def _swap_to(self, song: Song) -> None:
        with self._lock:
            self._session.generation += 1
            token = self._session.generation
            old = self._session.handle
            self._session.handle = None
            self._current_song = song
            self._session.position = 0.0
            self._session.duration = float(song.duration or 0)
            self._session.is_playing = False
            self._status = PlaybackStatus.LOADING
            self._play_when_ready = True
            volume = self._session.volume
            loop = self._repeat_mode is RepeatMode.ONE

        if old is not None:
            self._release(old)

        if not song.audio:
            self._load_failed(token, song, ResourceLoadFailure(song.id, "song has no audio source"))
            return

        logger.info(f"Loading {song.title} by {song.artist} (generation {token})")
        try:
            future = self._engine.create_resource(song.audio, volume, loop, token)
        except Exception as e:
            self._load_failed(token, song, e)
            return
        future.add_done_callback(lambda f: self._on_load_settled(token, song, f))

    def _on_load_settled(self, token: int, song: Song, future: Future) -> None:
        with self._lock:
            if not self._closed:
                self.loop.submit(self._apply, self._on_resource_ready, (token, song, future))
                return
        if future.exception() is None:
            logger.debug(f"Releasing {song.title}, loaded after shutdown")
            self._release(future.result())

    def _on_resource_ready(self, token: int, song: Song, future: Future) -> None:
        try:
            resource = future.result()
        except Exception as e:
            self._load_failed(token, song, e)
            return

        with self._lock:
            current = self._session.generation
            if token == current:
                self._session.handle = resource
                volume = self._session.volume
                loop = self._repeat_mode is RepeatMode.ONE
                start = self._play_when_ready

        if token != current:
            logger.debug(f"Releasing superseded load of {song.title} "
                         f"(generation {token}, current {current})")
            self._release(resource)
            return

        self._engine_call("set_volume", resource, volume)
        self._engine_call("set_loop", resource, loop)
        if start:
            self._engine_call("play", resource)
        with self._lock:
            self._session.duration = float(resource.duration or song.duration or 0)
            self._session.is_playing = start
            self._status = PlaybackStatus.PLAYING if start else PlaybackStatus.PAUSED
        if start:
            logger.info(f"Now playing: {song.title} by {song.artist}")
        else:
            logger.info(f"Loaded {song.title} paused")

    def _load_failed(self, token: int, song: Song, error: Exception) -> None:
        with self._lock:
            if token != self._session.generation:
                logger.debug(f"Ignoring failed superseded load of {song.title}: {error}")
                return
            self._session.handle = None
            self._session.is_playing = False
            self._status = PlaybackStatus.STOPPED
        logger.error(f"Could not play {song.title}: {error}")

    def _release(self, resource: AudioResource) -> None:
        try:
            future = self._engine.release(resource)
        except Exception:
            logger.exception(f"Error releasing {resource.uri}")
            return
        future.add_done_callback(_log_release_result)

    def _engine_call(self, method: str, *args) -> None:
        try:
            getattr(self._engine, method)(*args)
        except Exception as e:
            logger.warning(f"Audio engine {method} failed: {e}")

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    def _post_position_update(self, resource: AudioResource, seconds: float, is_playing: bool) -> None:
        self._post(self._on_position_update, resource, seconds, is_playing)

    def _post_completed(self, resource: AudioResource) -> None:
        self._post(self._on_completed, resource)

    def _require_live(self, resource: AudioResource) -> None:
        with self._lock:
            generation = self._session.generation
            live = self._session.handle
        if resource.tag != generation or resource is not live:
            raise StaleEventDiscarded(
                f"event for generation {resource.tag} (current {generation})"
            )

    def _on_position_update(self, resource: AudioResource, seconds: float, is_playing: bool) -> None:
        try:
            self._require_live(resource)
        except StaleEventDiscarded as e:
            logger.debug(f"Discarding position update: {e}")
            return
        with self._lock:
            self._session.position = max(0.0, float(seconds))
            self._session.is_playing = bool(is_playing)
            if is_playing:
                self._status = PlaybackStatus.PLAYING
            elif self._status is PlaybackStatus.PLAYING:
                self._status = PlaybackStatus.PAUSED

    def _on_completed(self, resource: AudioResource) -> None:
        try:
            self._require_live(resource)
        except StaleEventDiscarded as e:
            logger.debug(f"Discarding completion: {e}")
            return
        if resource.loop:
            return
        logger.info(f"Finished {resource.uri}")
        self._do_next()


def _clamp_volume(value: float) -> float:
    return max(MIN_VOLUME, min(MAX_VOLUME, float(value)))


def _log_release_result(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.warning(f"Releasing audio resource failed: {error}")
