"""
Catalog service.
Fetches the song list from the Supabase ``songs`` table, falling back to a
built-in list whenever the backend is missing or misbehaves.
"""

import logging
from typing import List, Optional

import requests

from shared.constants import CATALOG_TABLE, DEFAULT_CATALOG_TIMEOUT
from shared.errors import CatalogUnavailable
from shared.models import Song

logger = logging.getLogger(__name__)

FALLBACK_SONGS: List[Song] = [
    Song(
        id="1",
        title="Blinding Lights",
        artist="The Weeknd",
        album="After Hours",
        cover="https://upload.wikimedia.org/wikipedia/en/e/e6/The_Weeknd_-_Blinding_Lights.png",
        duration=243,
        audio="https://dxlzxcohsmgkrgnacgkf.supabase.co/storage/v1/object/public/music//BlindingLights.mp3",
    ),
    Song(
        id="2",
        title="Watermelon Sugar",
        artist="Harry Styles",
        album="Fine Line",
        cover="https://upload.wikimedia.org/wikipedia/en/b/bf/Watermelon_Sugar_-_Harry_Styles.png",
        duration=174,
        audio="https://dxlzxcohsmgkrgnacgkf.supabase.co/storage/v1/object/public/music//WatermelonSugar.mp3",
    ),
    Song(
        id="3",
        title="Good 4 U",
        artist="Olivia Rodrigo",
        album="SOUR",
        cover="https://upload.wikimedia.org/wikipedia/en/3/3e/Olivia_Rodrigo_-_Good_4_U.png",
        duration=178,
        audio="https://dxlzxcohsmgkrgnacgkf.supabase.co/storage/v1/object/public/music//Good4U.mp3",
    ),
    Song(
        id="4",
        title="Levitating",
        artist="Dua Lipa",
        album="Future Nostalgia",
        cover="https://upload.wikimedia.org/wikipedia/en/3/3d/Dua_Lipa_Levitating_%28DaBaby_Remix%29.png",
        duration=203,
        audio="https://dxlzxcohsmgkrgnacgkf.supabase.co/storage/v1/object/public/music//Levitating.mp3",
    ),
    Song(
        id="5",
        title="Anti-Hero",
        artist="Taylor Swift",
        album="Midnights",
        cover="https://upload.wikimedia.org/wikipedia/en/b/b9/Taylor_Swift_-_Anti-Hero.png",
        duration=200,
        audio="https://dxlzxcohsmgkrgnacgkf.supabase.co/storage/v1/object/public/music//AntiHero.mp3",
    ),
]


class CatalogService:
    """Provides the ordered song catalog to the controller."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: float = DEFAULT_CATALOG_TIMEOUT,
                 session: Optional[requests.Session] = None,
                 fallback: Optional[List[Song]] = None):
        self.base_url = base_url.rstrip('/') if base_url else None
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.fallback = list(fallback) if fallback is not None else list(FALLBACK_SONGS)
        self._songs: Optional[List[Song]] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def fetch_catalog(self) -> List[Song]:
        """
        Return the catalog, fetching it on first use.
        Never raises: failures yield the built-in list.
        """
        if self._songs is None:
            self._songs = self._fetch_or_fallback()
        return list(self._songs)

    def refresh(self) -> List[Song]:
        """Drop the cached catalog and fetch again."""
        self._songs = None
        return self.fetch_catalog()

    def get_song(self, song_id: str) -> Optional[Song]:
        for song in self.fetch_catalog():
            if song.id == song_id:
                return song
        return None

    def _fetch_or_fallback(self) -> List[Song]:
        try:
            songs = self._fetch_remote()
        except CatalogUnavailable as e:
            logger.warning(f"Catalog unavailable, using built-in songs: {e}")
            return list(self.fallback)
        logger.info(f"Fetched {len(songs)} songs from catalog")
        return songs

    def _fetch_remote(self) -> List[Song]:
        if not self.is_configured:
            raise CatalogUnavailable("catalog URL or key not configured")

        url = f"{self.base_url}/rest/v1/{CATALOG_TABLE}"
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        params = {"select": "*", "order": "id.asc"}
        try:
            response = self.session.get(url, headers=headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as e:
            raise CatalogUnavailable(str(e)) from e
        except ValueError as e:
            raise CatalogUnavailable(f"invalid JSON from catalog: {e}") from e

        if not isinstance(rows, list):
            raise CatalogUnavailable("catalog response is not a list")

        songs = []
        for row in rows:
            try:
                songs.append(Song.from_dict(row))
            except (KeyError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping malformed catalog row {row!r}: {e}")
        if not songs:
            raise CatalogUnavailable("catalog returned no songs")
        return songs
