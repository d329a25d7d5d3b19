"""
Data models for songs and playback state.

This module defines the core data structures shared between the catalog,
the favorites store and the playback controller.
"""

from dataclasses import dataclass, asdict, field
from typing import List, Dict, Optional, Any
from enum import Enum
import dataclasses


class RepeatMode(Enum):
    """How the playlist advances once a song finishes."""
    NONE = "none"
    ALL = "all"
    ONE = "one"


class PlaybackStatus(Enum):
    """State of the playback controller."""
    EMPTY = "empty"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Song:
    """
    Represents a single song in the catalog.

    Attributes:
        id: Unique, stable identifier
        title: Song title
        artist: Artist name
        album: Album name
        cover: Cover art URL or path
        duration: Duration in seconds, used until the engine reports its own
        audio: Audio source URI (optional, songs without one cannot be played)
    """
    id: str
    title: str
    artist: str
    album: str
    cover: str = ""
    duration: float = 0
    audio: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert song to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Song':
        """Create Song from dictionary, filtering unknown keys."""
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}
        # Catalog rows may carry integer primary keys
        filtered_data['id'] = str(filtered_data['id'])
        if filtered_data.get('duration') is None:
            filtered_data['duration'] = 0
        return cls(**filtered_data)


@dataclass
class PlaybackSession:
    """
    The currently loaded engine resource and its telemetry.

    ``generation`` increases on every swap; events tagged with an older
    value belong to a superseded resource.
    """
    handle: Optional[Any] = None
    generation: int = 0
    position: float = 0.0
    duration: float = 0.0
    is_playing: bool = False
    volume: float = 0.75


@dataclass(frozen=True)
class PlayerSnapshot:
    """Read-only copy of everything a front end displays."""
    status: PlaybackStatus
    current_song: Optional[Song]
    is_playing: bool
    current_time: float
    duration: float
    volume: float
    playlist: List[Song] = field(default_factory=list)
    current_index: int = 0
    shuffled: bool = False
    repeat_mode: RepeatMode = RepeatMode.NONE
    up_next: List[Song] = field(default_factory=list)
    favorite_ids: frozenset = frozenset()

    def is_favorite(self, song_id: str) -> bool:
        return song_id in self.favorite_ids
