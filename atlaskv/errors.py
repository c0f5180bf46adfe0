"""Exception hierarchy for the key-value store."""


class AtlasError(Exception):
    """Base class for every error raised by the store."""


class SerializationError(AtlasError):
    """A record could not be encoded."""


class WalCorruptionError(AtlasError):
    """A write-ahead log record is malformed or fails its checksum."""


class StorageError(AtlasError):
    """An on-disk table is invalid or cannot be written."""


class KeyNotFoundError(AtlasError):
    """A key is absent from the table that was searched."""

    def __init__(self, message: str = "Key not found") -> None:
        super().__init__(message)