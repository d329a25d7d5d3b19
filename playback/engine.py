"""
Audio engine contract and the python-mpv implementation.

The controller only talks to ``AudioEngine``. Each loaded file is an
``AudioResource`` tagged with the generation token the controller handed
over when requesting it; every event the engine emits carries the resource
back so stale ones can be recognised.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional
import logging
import threading
import time

from shared.constants import AUDIO_LOADER_WORKERS, POSITION_UPDATE_INTERVAL
from shared.errors import ResourceLoadFailure

logger = logging.getLogger(__name__)

PositionCallback = Callable[["AudioResource", float, bool], None]
CompletedCallback = Callable[["AudioResource"], None]


@dataclass(eq=False)
class AudioResource:
    """A single loaded audio file."""
    tag: int
    uri: str
    loop: bool = False
    duration: Optional[float] = None
    native: Any = field(default=None, repr=False)


class AudioEngine(ABC):
    """Interface for audio backends."""

    def __init__(self):
        self._on_position_update: Optional[PositionCallback] = None
        self._on_completed: Optional[CompletedCallback] = None

    def set_event_handlers(self, on_position_update: PositionCallback,
                           on_completed: CompletedCallback) -> None:
        """Route position ticks and end-of-file events to the given callables."""
        self._on_position_update = on_position_update
        self._on_completed = on_completed

    @abstractmethod
    def create_resource(self, uri: str, start_volume: float, loop: bool, tag: int) -> Future:
        """Start loading ``uri``. The future yields an AudioResource or raises ResourceLoadFailure."""

    @abstractmethod
    def release(self, resource: AudioResource) -> Future:
        """Unload a resource. Callers do not wait on the result."""

    @abstractmethod
    def play(self, resource: AudioResource) -> None:
        pass

    @abstractmethod
    def pause(self, resource: AudioResource) -> None:
        pass

    @abstractmethod
    def seek(self, resource: AudioResource, seconds: float) -> None:
        pass

    @abstractmethod
    def set_volume(self, resource: AudioResource, value: float) -> None:
        """Volume in [0.0, 1.0]."""

    @abstractmethod
    def set_loop(self, resource: AudioResource, loop: bool) -> None:
        """Make the resource restart by itself when it reaches the end."""

    def shutdown(self) -> None:
        pass

    def _emit_position(self, resource: AudioResource, seconds: float, is_playing: bool) -> None:
        if self._on_position_update:
            self._on_position_update(resource, seconds, is_playing)

    def _emit_completed(self, resource: AudioResource) -> None:
        if self._on_completed:
            self._on_completed(resource)


class MpvAudioEngine(AudioEngine):
    """
    Audio engine backed by libmpv.

    Every resource gets its own audio-only mpv instance; loading and
    teardown happen on a small worker pool so callers never block.
    """

    def __init__(self, load_timeout: Optional[float] = None,
                 update_interval: float = POSITION_UPDATE_INTERVAL):
        super().__init__()
        # Imported here so the rest of the package works without libmpv
        import mpv
        self._mpv = mpv
        self.load_timeout = load_timeout
        self.update_interval = update_interval
        self._executor = ThreadPoolExecutor(max_workers=AUDIO_LOADER_WORKERS,
                                            thread_name_prefix="AudioLoader")

    def create_resource(self, uri: str, start_volume: float, loop: bool, tag: int) -> Future:
        return self._executor.submit(self._load, uri, start_volume, loop, tag)

    def _load(self, uri: str, start_volume: float, loop: bool, tag: int) -> AudioResource:
        try:
            player = self._mpv.MPV(
                vo='null',
                video=False,
                ytdl=False,  # We provide direct URLs
                keep_open='yes',  # stay on the last frame so eof-reached fires
            )
        except Exception as e:
            raise ResourceLoadFailure(uri, f"mpv unavailable: {e}") from e

        resource = AudioResource(tag=tag, uri=uri, loop=loop, native=player)
        ready = threading.Event()
        failures: List[str] = []

        def on_duration(_name, value):
            if value is not None:
                ready.set()

        def on_event(event):
            # mpv goes idle with end-file instead of reporting a duration
            # when the stream cannot be opened
            if event.event_id != self._mpv.MpvEventID.END_FILE or ready.is_set():
                return
            error = getattr(event.data, 'error', None)
            failures.append(f"could not open stream (mpv error {error})" if error
                            else "stream ended before it started")
            ready.set()

        try:
            player.observe_property('duration', on_duration)
            player.register_event_callback(on_event)
            player.volume = start_volume * 100
            player.loop_file = 'inf' if loop else 'no'
            player.pause = True
            player.play(uri)
            if not ready.wait(self.load_timeout):
                failures.append(f"no duration after {self.load_timeout}s")
        except Exception as e:
            failures.append(str(e))
        finally:
            try:
                player.unobserve_property('duration', on_duration)
                player.unregister_event_callback(on_event)
            except Exception as e:
                logger.debug(f"Could not detach load watchers for {uri}: {e}")

        if failures:
            player.terminate()
            raise ResourceLoadFailure(uri, failures[0])

        resource.duration = player.duration
        self._bind_events(resource)
        logger.debug(f"Loaded {uri} (tag={tag}, duration={resource.duration})")
        return resource

    def _bind_events(self, resource: AudioResource) -> None:
        player = resource.native
        last_update = [0.0]

        def on_time_pos(_name, value):
            if value is None:
                return
            # Throttle to ~4 updates per second
            now = time.monotonic()
            if now - last_update[0] >= self.update_interval:
                last_update[0] = now
                self._emit_position(resource, value, not player.pause)

        def on_pause(_name, value):
            if value is None:
                return
            self._emit_position(resource, player.time_pos or 0.0, not value)

        def on_eof(_name, value):
            if value:
                self._emit_completed(resource)

        player.observe_property('time-pos', on_time_pos)
        player.observe_property('pause', on_pause)
        player.observe_property('eof-reached', on_eof)

    def release(self, resource: AudioResource) -> Future:
        try:
            return self._executor.submit(self._terminate, resource)
        except RuntimeError:
            # Pool already shut down: a load that finished during shutdown
            future: Future = Future()
            self._terminate(resource)
            future.set_result(None)
            return future

    @staticmethod
    def _terminate(resource: AudioResource) -> None:
        player = resource.native
        if player is not None:
            player.terminate()
            resource.native = None

    def play(self, resource: AudioResource) -> None:
        if resource.native is not None:
            resource.native.pause = False

    def pause(self, resource: AudioResource) -> None:
        if resource.native is not None:
            resource.native.pause = True

    def seek(self, resource: AudioResource, seconds: float) -> None:
        if resource.native is not None:
            resource.native.seek(seconds, reference='absolute')

    def set_volume(self, resource: AudioResource, value: float) -> None:
        if resource.native is not None:
            resource.native.volume = max(0.0, min(1.0, value)) * 100

    def set_loop(self, resource: AudioResource, loop: bool) -> None:
        resource.loop = loop
        if resource.native is not None:
            resource.native.loop_file = 'inf' if loop else 'no'

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
