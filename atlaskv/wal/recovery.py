"""Crash recovery by replaying the write-ahead log."""

from __future__ import annotations

import os
from dataclasses import dataclass

from atlaskv.errors import WalCorruptionError
from atlaskv.wal.entry import WalEntry
from atlaskv.wal.reader import WalReader


@dataclass
class RecoveryResult:
    """Statistics gathered while scanning a log."""

    entries_recovered: int = 0
    entries_corrupted: int = 0
    last_lsn: int = 0
    was_truncated: bool = False


def _scan(path: str | os.PathLike[str], collect: list[WalEntry] | None) -> RecoveryResult:
    result = RecoveryResult()
    with WalReader(path) as reader:
        while True:
            try:
                entry = reader.next_entry()
            except WalCorruptionError:
                result.entries_corrupted += 1
                result.was_truncated = True
                break
            if entry is None:
                result.was_truncated = not reader.is_at_eof()
                break
            result.last_lsn = entry.lsn
            result.entries_recovered += 1
            if collect is not None:
                collect.append(entry)
    return result


def recover(path: str | os.PathLike[str]) -> tuple[list[WalEntry], RecoveryResult]:
    """Read every valid entry, stopping at the first corrupt or partial record."""
    entries: list[WalEntry] = []
    result = _scan(path, entries)
    return entries, result


def verify(path: str | os.PathLike[str]) -> RecoveryResult:
    """Check a log the way ``recover`` does, returning only the statistics."""
    return _scan(path, None)