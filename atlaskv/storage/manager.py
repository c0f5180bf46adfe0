"""Coordination of the table files that make up the on-disk store."""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path

from atlaskv.errors import KeyNotFoundError, StorageError
from atlaskv.storage.reader import SSTableReader
from atlaskv.storage.sstable import SSTable, SSTableBuilder

_PREFIX = "sstable_"

Entries = Mapping[bytes, "bytes | None"] | Iterable[tuple[bytes, "bytes | None"]]


def _parse_sstable_id(path: Path) -> int | None:
    """``sstable_000042.sst`` gives 42; anything else gives None."""
    stem = path.stem
    if not stem.startswith(_PREFIX):
        return None
    digits = stem[len(_PREFIX):]
    if not (digits.isascii() and digits.isdigit()):
        return None
    return int(digits)


class StorageManager:
    """Owns the open tables in a directory, newest first."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._data_dir = Path(path)
        self._data_dir.mkdir(parents=True, exist_ok=True)

        ids = sorted(
            (
                sstable_id
                for file_path in self._data_dir.iterdir()
                if file_path.is_file()
                and (sstable_id := _parse_sstable_id(file_path)) is not None
            ),
            reverse=True,
        )
        readers: list[SSTableReader] = []
        try:
            for sstable_id in ids:
                readers.append(SSTableReader(self._sstable_path(sstable_id)))
        except BaseException:
            for reader in readers:
                reader.close()
            raise

        self._sstables = readers
        self._lock = threading.RLock()
        self._id_lock = threading.Lock()
        self._next_id = ids[0] + 1 if ids else 1

    def _sstable_path(self, sstable_id: int) -> Path:
        return self._data_dir / f"{_PREFIX}{sstable_id:06}.sst"

    def get(self, key: bytes) -> bytes | None:
        """Search tables newest to oldest; None when absent or deleted."""
        key = bytes(key)
        with self._lock:
            for reader in self._sstables:
                if not reader.might_contain(key):
                    continue
                try:
                    return reader.get(key)
                except KeyNotFoundError:
                    continue
        return None

    def flush(self, entries: Entries) -> SSTable:
        """Write entries to a new table and make it the newest one.

        ``entries`` is a mapping or an iterable of ``(key, value)`` pairs;
        a value of None records a deletion.
        """
        items = entries.items() if isinstance(entries, Mapping) else entries
        ordered = sorted(
            ((bytes(key), None if value is None else bytes(value)) for key, value in items),
            key=lambda item: item[0],
        )
        if not ordered:
            raise StorageError("Cannot flush empty MemTable")

        with self._id_lock:
            sstable_id = self._next_id
            self._next_id += 1
        path = self._sstable_path(sstable_id)

        builder = SSTableBuilder(path)
        for key, value in ordered:
            if value is None:
                builder.add_tombstone(key)
            else:
                builder.add(key, value)
        metadata = builder.finish()

        reader = SSTableReader(path)
        with self._lock:
            self._sstables.insert(0, reader)
        return metadata

    @property
    def sstable_count(self) -> int:
        """Number of open tables."""
        with self._lock:
            return len(self._sstables)

    @property
    def data_dir(self) -> Path:
        """Directory holding the table files."""
        return self._data_dir

    @property
    def next_sstable_id(self) -> int:
        """Identifier the next flushed table will receive."""
        with self._id_lock:
            return self._next_id

    def close(self) -> None:
        """Close every open table."""
        with self._lock:
            for reader in self._sstables:
                reader.close()
            self._sstables = []