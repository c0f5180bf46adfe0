"""Reading table files through an in-memory index."""

from __future__ import annotations

import os
import struct
import threading
from collections.abc import Iterator
from pathlib import Path

from atlaskv.errors import KeyNotFoundError, StorageError
from atlaskv.storage.sstable import (
    FOOTER_SIZE,
    HEADER_SIZE,
    MAGIC,
    TOMBSTONE_MARKER,
    VERSION,
)

_INDEX_ENTRY_HEADER = struct.Struct("<IQ")
_DATA_ENTRY_HEADER = struct.Struct("<II")


def _parse_index(block: bytes) -> dict[bytes, int]:
    """Decode ``[key_len u32][offset u64][key]`` records, ignoring a cut-off tail."""
    index: dict[bytes, int] = {}
    pos = 0
    while pos + _INDEX_ENTRY_HEADER.size <= len(block):
        key_len, offset = _INDEX_ENTRY_HEADER.unpack_from(block, pos)
        pos += _INDEX_ENTRY_HEADER.size
        if pos + key_len > len(block):
            break
        index[block[pos:pos + key_len]] = offset
        pos += key_len
    return index


class SSTableReader:
    """An open table file whose whole index is held in memory.

    Lookups are safe to make from several threads at once.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._file = open(self._path, "rb")
        self._lock = threading.Lock()
        try:
            self._entry_count, self._index_offset, self._index = self._load()
        except BaseException:
            self._file.close()
            raise
        ordered = sorted(self._index)
        self._min_key = ordered[0] if ordered else None
        self._max_key = ordered[-1] if ordered else None

    def _read_exact(self, size: int) -> bytes:
        chunk = self._file.read(size)
        if len(chunk) != size:
            raise StorageError(
                f"Unexpected end of SSTable {self._path}: wanted {size} bytes, got {len(chunk)}"
            )
        return chunk

    def _load(self) -> tuple[int, int, dict[bytes, int]]:
        file_size = os.fstat(self._file.fileno()).st_size
        header = self._read_exact(HEADER_SIZE)
        if header[:4] != MAGIC:
            raise StorageError(
                f"Invalid SSTable magic: expected ATKV, got {list(header[:4])}"
            )
        version, entry_count = struct.unpack_from("<HQ", header, 4)
        if version != VERSION:
            raise StorageError(f"Unsupported SSTable version: {version}")

        footer_start = file_size - FOOTER_SIZE
        if footer_start < HEADER_SIZE:
            raise StorageError(f"SSTable {self._path} is too small to hold a footer")
        self._file.seek(footer_start)
        index_offset, _data_crc = struct.unpack_from("<QI", self._read_exact(FOOTER_SIZE))
        if not HEADER_SIZE <= index_offset <= footer_start:
            raise StorageError(f"SSTable index offset {index_offset} is out of range")

        self._file.seek(index_offset)
        index = _parse_index(self._read_exact(footer_start - index_offset))
        return entry_count, index_offset, index

    def get(self, key: bytes) -> bytes | None:
        """Return the stored value, or None when the key holds a tombstone.

        Raises KeyNotFoundError when the key is not in this table.
        """
        offset = self._index.get(bytes(key))
        if offset is None:
            raise KeyNotFoundError()
        with self._lock:
            self._file.seek(offset)
            key_len, val_len = _DATA_ENTRY_HEADER.unpack(self._read_exact(_DATA_ENTRY_HEADER.size))
            if val_len == TOMBSTONE_MARKER:
                return None
            self._file.seek(offset + _DATA_ENTRY_HEADER.size + key_len)
            return self._read_exact(val_len)

    @property
    def entry_count(self) -> int:
        """Number of entries recorded in the header."""
        return self._entry_count

    @property
    def min_key(self) -> bytes | None:
        """Smallest indexed key, or None for an empty table."""
        return self._min_key

    @property
    def max_key(self) -> bytes | None:
        """Largest indexed key, or None for an empty table."""
        return self._max_key

    def might_contain(self, key: bytes) -> bool:
        """False only when ``key`` is certainly outside this table's key range."""
        if self._min_key is None or self._max_key is None:
            return False
        return self._min_key <= bytes(key) <= self._max_key

    def iter_entries(self) -> Iterator[tuple[bytes, bytes | None]]:
        """Yield ``(key, value)`` pairs in file order; a tombstone has value None."""
        offset = HEADER_SIZE
        while offset < self._index_offset:
            with self._lock:
                self._file.seek(offset)
                key_len, val_len = _DATA_ENTRY_HEADER.unpack(
                    self._read_exact(_DATA_ENTRY_HEADER.size)
                )
                key = self._read_exact(key_len)
                value = None if val_len == TOMBSTONE_MARKER else self._read_exact(val_len)
            offset += _DATA_ENTRY_HEADER.size + key_len + (0 if value is None else len(value))
            yield key, value

    def close(self) -> None:
        with self._lock:
            self._file.close()

    def __enter__(self) -> SSTableReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()