"""Sorted string tables: the on-disk file format and its builder.

Layout::

    Header (14 bytes)   magic "ATKV" | version u16 | entry count u64
    Data block          [key_len u32][val_len u32][key][value] per entry
                        (val_len == 0xFFFFFFFF marks a tombstone, no value bytes)
    Index block         [key_len u32][offset u64][key] per entry
    Footer (16 bytes)   index offset u64 | data CRC32 u32 | padding (4)

All integers are little-endian.
"""

from __future__ import annotations

import os
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path

from atlaskv.errors import StorageError

MAGIC = b"ATKV"
VERSION = 1
HEADER_SIZE = 14
FOOTER_SIZE = 16
TOMBSTONE_MARKER = 0xFFFF_FFFF

_ENTRY_COUNT_OFFSET = len(MAGIC) + 2


@dataclass(frozen=True)
class SSTable:
    """Metadata describing a finished table file."""

    path: Path
    entry_count: int
    min_key: bytes
    max_key: bytes
    file_size: int

    def might_contain(self, key: bytes) -> bool:
        """False only when ``key`` lies outside ``[min_key, max_key]``."""
        return self.min_key <= bytes(key) <= self.max_key


class SSTableBuilder:
    """Writes entries, given in sorted key order, to a new table file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._file = open(self._path, "wb")
        try:
            self._file.write(MAGIC + struct.pack("<HQ", VERSION, 0))
        except BaseException:
            self._file.close()
            raise
        self._entry_count = 0
        self._offset = HEADER_SIZE
        self._index: list[tuple[bytes, int]] = []
        self._min_key: bytes | None = None
        self._max_key: bytes | None = None
        self._data_crc = 0

    def add(self, key: bytes, value: bytes) -> None:
        """Append a key with its value."""
        self._write_entry(bytes(key), bytes(value))

    def add_tombstone(self, key: bytes) -> None:
        """Append a deletion marker for ``key``."""
        self._write_entry(bytes(key), None)

    def _ensure_open(self) -> None:
        if self._file.closed:
            raise StorageError("SSTable builder is already finished")

    def _write_entry(self, key: bytes, value: bytes | None) -> None:
        self._ensure_open()
        self._index.append((key, self._offset))
        if self._min_key is None:
            self._min_key = key
        self._max_key = key

        val_len = TOMBSTONE_MARKER if value is None else len(value)
        chunk = struct.pack("<II", len(key), val_len) + key
        if value is not None:
            chunk += value
        self._file.write(chunk)
        self._data_crc = zlib.crc32(chunk, self._data_crc)
        self._offset += len(chunk)
        self._entry_count += 1

    def finish(self) -> SSTable:
        """Write the index and footer, fix up the header and return the metadata."""
        self._ensure_open()
        index_offset = self._offset
        try:
            self._file.write(
                b"".join(
                    struct.pack("<IQ", len(key), offset) + key
                    for key, offset in self._index
                )
            )
            self._file.write(struct.pack("<QI4x", index_offset, self._data_crc))
            self._file.flush()
            self._file.seek(_ENTRY_COUNT_OFFSET)
            self._file.write(struct.pack("<Q", self._entry_count))
            self._file.flush()
            os.fsync(self._file.fileno())
            file_size = os.fstat(self._file.fileno()).st_size
        except OSError as exc:
            raise StorageError(f"Failed to flush SSTable: {exc}") from exc
        finally:
            self._file.close()

        return SSTable(
            path=self._path,
            entry_count=self._entry_count,
            min_key=self._min_key or b"",
            max_key=self._max_key or b"",
            file_size=file_size,
        )