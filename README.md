# atlaskv

The storage layer of a single-node key-value store. It has two parts:

- a **write-ahead log** (`atlaskv.wal`). Each record has an LSN, a CRC32
  checksum and a length prefix. Recovery reads records until it reaches the
  first corrupt or partially written one.
- **SSTables** (`atlaskv.storage`). These are immutable files of sorted keys.
  Each open table keeps its index in memory. A `StorageManager` searches the
  tables from newest to oldest.

The package uses only the standard library.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Write-ahead log

```python
from atlaskv.wal.entry import Put, Delete
from atlaskv.wal.writer import WalWriter, EveryWrite, EveryNEntries
from atlaskv.wal.recovery import recover, verify

with WalWriter.open("wal.log", EveryWrite()) as wal:
    wal.append(Put(b"user:1", b"Alice"))   # returns LSN 1
    wal.append(Delete(b"user:1"))          # returns LSN 2
    wal.current_lsn                        # 3, the next LSN to be given

entries, result = recover("wal.log")
print(result.entries_recovered, result.entries_corrupted,
      result.last_lsn, result.was_truncated)
```

`WalWriter.open` creates the file, or empties it if it exists, and starts at
LSN 1. `WalWriter.open_append` keeps what is already in the file and starts
at the LSN you pass. Two sync strategies are available:

- `EveryWrite()` flushes and calls fsync after every append.
- `EveryNEntries(count)` does so once `count` entries have been appended
  since the last sync.

`uncommitted_count` tells how many entries have been written since the last
sync. `sync()` forces a sync. `truncate()` empties the log and resets the
LSN to 1.

Each record is a `WalEntry`. An entry has an `lsn`, an `operation` (`Put` or
`Delete`) and a `timestamp` in milliseconds. `WalEntry.create(lsn, op)`
stamps an entry with the current time. `serialize()` and
`WalEntry.deserialize(data)` convert between entries and their byte form.
`deserialize` checks the length, the CRC and the LSN. If any check fails, it
raises `WalCorruptionError`.

`WalReader(path)` reads a log one record at a time with `next_entry()`. It
returns `None` at the end of the file. It also returns `None` at a record
that was cut short at the end of the file. `entries()` yields the remaining
records. `is_at_eof()` tells whether every byte of the file has been read.

`recover(path)` returns the valid entries and a `RecoveryResult`. `verify(path)`
returns only the `RecoveryResult`. Both functions stop at the first corrupt
record, which is counted in `entries_corrupted`. They also stop at a partial
record at the end of the file. In either case they set `was_truncated`.
Neither function modifies the file.

## SSTables

```python
from atlaskv.storage.sstable import SSTableBuilder
from atlaskv.storage.reader import SSTableReader

builder = SSTableBuilder("table.sst")
builder.add(b"a", b"1")
builder.add_tombstone(b"b")
meta = builder.finish()   # SSTable(path, entry_count, min_key, max_key, file_size)

with SSTableReader("table.sst") as table:
    table.get(b"a")             # b"1"
    table.get(b"b")             # None: the key is deleted
    list(table.iter_entries())  # [(b"a", b"1"), (b"b", None)]
```

Add keys to the builder in sorted order. `finish()` writes the index and the
footer, then closes the file. If you use the builder after that, it raises
`StorageError`.

`SSTableReader.get` raises `KeyNotFoundError` when the table does not hold
the key. The reader has these properties: `entry_count`, `min_key` and
`max_key`. `might_contain(key)` does a range check. It returns `False` only
when the key is outside `[min_key, max_key]`. The same check is on the
`SSTable` metadata.

## Storage manager

```python
from atlaskv.storage.manager import StorageManager

manager = StorageManager("data/sstables")
manager.flush([(b"k", b"v"), (b"gone", None)])   # None marks a tombstone
manager.flush({b"k": b"v2"})                      # a mapping works too
manager.get(b"k")        # b"v2", because newer tables win
manager.get(b"gone")     # None
manager.sstable_count    # 2
manager.close()
```

`flush` sorts the entries itself. It then writes them to a new table file
named `sstable_NNNNNN.sst` and returns the table's `SSTable` metadata. It
raises `StorageError` if you give it no entries. When a manager opens a
directory, it creates the directory if it is missing, then finds and opens
the tables already there. It continues numbering from the highest table
number it found (`next_sstable_id`).

## What is not included

This package is only a storage layer. It has no in-memory write buffer and
no engine that ties the log to the tables. It does not replay a recovered
log into tables for you. It has no compaction and no merging of old tables.
It has no network server, no client protocol and no command-line tool.

## Errors

Every error is a subclass of `atlaskv.errors.AtlasError`:

| Error | Raised when |
| --- | --- |
| `SerializationError` | a log record cannot be encoded |
| `WalCorruptionError` | a log record is malformed or fails its CRC or LSN check |
| `StorageError` | a table file is invalid, cannot be written, or a flush has no entries |
| `KeyNotFoundError` | a key is missing from the single table that was searched |