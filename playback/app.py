"""Wires the controller together from settings; call once at process start."""

from typing import Optional

from playback.catalog import CatalogService
from playback.controller import PlaybackController
from playback.engine import AudioEngine, MpvAudioEngine
from playback.favourites_manager import FavoritesStore
from shared.config import PlayerSettings, get_storage_path
from shared.storage import JsonFileStore, KeyValueStore


def build_controller(
    settings: PlayerSettings,
    engine: Optional[AudioEngine] = None,
    store: Optional[KeyValueStore] = None,
    catalog: Optional[CatalogService] = None,
) -> PlaybackController:
    """
    Create the controller and its collaborators.

    The mpv engine is only constructed when no engine is passed in, since it
    needs libmpv to be installed.
    """
    catalog = catalog or CatalogService(
        base_url=settings.catalog_url,
        api_key=settings.catalog_key,
        timeout=settings.catalog_timeout,
    )
    favorites = FavoritesStore(store or JsonFileStore(get_storage_path()))
    engine = engine or MpvAudioEngine(load_timeout=settings.load_timeout)
    return PlaybackController(
        engine=engine,
        catalog=catalog,
        favorites=favorites,
        volume=settings.default_volume,
    )
