"""
Shared constants used across the player.
"""

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.config/pocketplay"
CONFIG_FILENAME = "config.json"
STORAGE_FILENAME = "storage.json"

# Environment overrides
ENV_CONFIG_DIR = "POCKETPLAY_CONFIG_DIR"
ENV_CATALOG_URL = "POCKETPLAY_CATALOG_URL"
ENV_CATALOG_KEY = "POCKETPLAY_CATALOG_KEY"
ENV_LOG_LEVEL = "POCKETPLAY_LOG_LEVEL"

# Persistent storage keys
FAVORITES_STORAGE_KEY = "favoriteSongs"

# Catalog
CATALOG_TABLE = "songs"
DEFAULT_CATALOG_TIMEOUT = 10  # seconds

# Playback
DEFAULT_VOLUME = 0.75
MIN_VOLUME = 0.0
MAX_VOLUME = 1.0
POSITION_UPDATE_INTERVAL = 0.25  # seconds between engine time updates
AUDIO_LOADER_WORKERS = 2
