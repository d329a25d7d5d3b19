"""
Error kinds raised inside adapters and absorbed at the controller boundary.
"""


class PocketPlayError(Exception):
    """Base class for all player errors."""


class CatalogUnavailable(PocketPlayError):
    """The catalog service could not be reached or returned unusable data."""


class ResourceLoadFailure(PocketPlayError):
    """The audio engine could not open a URI."""

    def __init__(self, uri, reason=None):
        self.uri = uri
        self.reason = reason
        message = f"Could not load audio resource {uri!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PersistenceWriteFailure(PocketPlayError):
    """A key-value store write did not complete."""


class StaleEventDiscarded(PocketPlayError):
    """An engine event arrived for a superseded resource generation."""
