"""Sequential reading of write-ahead log files."""

from __future__ import annotations

import os
import struct
from collections.abc import Iterator
from pathlib import Path

from atlaskv.wal.entry import HEADER_SIZE, WalEntry


class WalReader:
    """Reads entries one after another from a log file.

    A record cut short at the end of the file is treated as the end of the log.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._file = open(Path(path), "rb")
        self._file_size = os.fstat(self._file.fileno()).st_size
        self._position = 0

    def _read_exact(self, size: int) -> bytes:
        chunk = self._file.read(size)
        if len(chunk) != size:
            raise OSError(f"short read: expected {size} bytes, got {len(chunk)}")
        return chunk

    def next_entry(self) -> WalEntry | None:
        """Return the next entry, or None at the end or at a partial record.

        Raises WalCorruptionError when a complete record fails validation.
        """
        if self._position + HEADER_SIZE > self._file_size:
            return None
        self._file.seek(self._position)
        header = self._read_exact(HEADER_SIZE)
        (data_len,) = struct.unpack_from("<I", header, 12)
        if self._position + HEADER_SIZE + data_len > self._file_size:
            return None
        data = self._read_exact(data_len)
        entry = WalEntry.deserialize(header + data)
        self._position += HEADER_SIZE + data_len
        return entry

    def is_at_eof(self) -> bool:
        """True once every byte of the file has been consumed."""
        return self._position >= self._file_size

    def entries(self) -> Iterator[WalEntry]:
        """Yield every remaining valid entry."""
        while (entry := self.next_entry()) is not None:
            yield entry

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> WalReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()