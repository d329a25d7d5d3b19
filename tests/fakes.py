"""Scripted test doubles."""

from concurrent.futures import Future
from dataclasses import dataclass
from typing import List, Optional

from playback.engine import AudioEngine, AudioResource
from shared.errors import ResourceLoadFailure
from shared.models import Song

SONGS = [
    Song(id="1", title="Blinding Lights", artist="The Weeknd", album="After Hours",
         cover="bl.png", duration=243, audio="https://example.test/BlindingLights.mp3"),
    Song(id="2", title="Watermelon Sugar", artist="Harry Styles", album="Fine Line",
         cover="ws.png", duration=174, audio="https://example.test/WatermelonSugar.mp3"),
    Song(id="3", title="Good 4 U", artist="Olivia Rodrigo", album="SOUR",
         cover="g4u.png", duration=178, audio="https://example.test/Good4U.mp3"),
]

SILENT_SONG = Song(id="9", title="Silence", artist="Nobody", album="Nothing", duration=60)


@dataclass
class PendingLoad:
    uri: str
    start_volume: float
    loop: bool
    tag: int
    future: Future


class FakeAudioEngine(AudioEngine):
    """
    Records every call. Loads stay pending until the test resolves or
    fails them, which makes out-of-order completion easy to script.
    """

    def __init__(self):
        super().__init__()
        self.loads: List[PendingLoad] = []
        self.released: List[AudioResource] = []
        self.calls: list = []
        self.shut_down = False

    def create_resource(self, uri, start_volume, loop, tag):
        future = Future()
        self.loads.append(PendingLoad(uri, start_volume, loop, tag, future))
        return future

    def resolve(self, index: int = -1, duration: Optional[float] = 200.0) -> AudioResource:
        load = self.loads[index]
        resource = AudioResource(tag=load.tag, uri=load.uri, loop=load.loop, duration=duration)
        load.future.set_result(resource)
        return resource

    def fail(self, index: int = -1, reason: str = "404 Not Found") -> None:
        load = self.loads[index]
        load.future.set_exception(ResourceLoadFailure(load.uri, reason))

    def release(self, resource):
        self.released.append(resource)
        future = Future()
        future.set_result(None)
        return future

    def play(self, resource):
        self.calls.append(("play", resource))

    def pause(self, resource):
        self.calls.append(("pause", resource))

    def seek(self, resource, seconds):
        self.calls.append(("seek", resource, seconds))

    def set_volume(self, resource, value):
        self.calls.append(("set_volume", resource, value))

    def set_loop(self, resource, loop):
        resource.loop = loop
        self.calls.append(("set_loop", resource, loop))

    def shutdown(self):
        self.shut_down = True

    def emit_position(self, resource, seconds, is_playing):
        self._emit_position(resource, seconds, is_playing)

    def emit_completed(self, resource):
        self._emit_completed(resource)

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]
