"""Key-value storage with a write-ahead log, crash recovery and SSTables."""

__version__ = "0.1.0"