"""Appending entries to the write-ahead log."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

from atlaskv.wal.entry import Operation, WalEntry


@dataclass(frozen=True)
class EveryWrite:
    """Flush and fsync after every appended entry."""


@dataclass(frozen=True)
class EveryNEntries:
    """Flush and fsync once ``count`` entries have been appended since the last sync."""

    count: int


SyncStrategy = Union[EveryWrite, EveryNEntries]


class WalWriter:
    """Appends entries to a log file, assigning each a sequence number."""

    def __init__(self, file: BinaryIO, current_lsn: int, sync_strategy: SyncStrategy) -> None:
        self._file = file
        self._current_lsn = current_lsn
        self._sync_strategy = sync_strategy
        self._uncommitted_count = 0

    @classmethod
    def open(cls, path: str | os.PathLike[str], sync_strategy: SyncStrategy) -> WalWriter:
        """Create or truncate the log at ``path``; numbering starts at 1."""
        return cls(open(Path(path), "wb"), 1, sync_strategy)

    @classmethod
    def open_append(
        cls, path: str | os.PathLike[str], sync_strategy: SyncStrategy, next_lsn: int
    ) -> WalWriter:
        """Open the log for appending, keeping its contents, continuing at ``next_lsn``."""
        return cls(open(Path(path), "ab"), next_lsn, sync_strategy)

    def append(self, operation: Operation) -> int:
        """Write one entry and return the sequence number it was given."""
        lsn = self._current_lsn
        self._current_lsn += 1
        self._file.write(WalEntry.create(lsn, operation).serialize())
        self._uncommitted_count += 1
        match self._sync_strategy:
            case EveryWrite():
                self.sync()
            case EveryNEntries(count=count):
                if self._uncommitted_count >= count:
                    self.sync()
        return lsn

    def sync(self) -> None:
        """Flush buffered writes and force them to disk."""
        self._file.flush()
        os.fsync(self._file.fileno())
        self._uncommitted_count = 0

    @property
    def current_lsn(self) -> int:
        """The sequence number the next entry will receive."""
        return self._current_lsn

    @property
    def uncommitted_count(self) -> int:
        """Entries written since the last sync."""
        return self._uncommitted_count

    def truncate(self) -> None:
        """Empty the log and restart numbering at 1."""
        self._file.flush()
        self._file.truncate(0)
        self._file.seek(0)
        self._current_lsn = 1
        self._uncommitted_count = 0

    def close(self) -> None:
        """Flush pending writes and close the file."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def __enter__(self) -> WalWriter:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()