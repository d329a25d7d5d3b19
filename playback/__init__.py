"""Playback core: controller, navigation, up-next queue, favorites and audio engine."""

from .controller import PlaybackController
from .engine import AudioEngine, AudioResource, MpvAudioEngine
from .favourites_manager import FavoritesStore
from .queue_manager import UpNextQueue

__all__ = [
    "PlaybackController",
    "AudioEngine",
    "AudioResource",
    "MpvAudioEngine",
    "FavoritesStore",
    "UpNextQueue",
]
