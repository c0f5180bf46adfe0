import pytest

from atlaskv.errors import StorageError
from atlaskv.storage.manager import StorageManager


@pytest.fixture
def manager(tmp_path):
    mgr = StorageManager(tmp_path / "sstables")
    yield mgr
    mgr.close()


def test_open_creates_directory(tmp_path):
    target = tmp_path / "nested" / "sstables"
    mgr = StorageManager(target)
    try:
        assert target.is_dir()
        assert mgr.data_dir == target
        assert mgr.sstable_count == 0
        assert mgr.next_sstable_id == 1
    finally:
        mgr.close()


def test_get_on_empty_store_returns_none(manager):
    assert manager.get(b"missing") is None


def test_flush_then_get(manager):
    manager.flush({b"k1": b"v1", b"k2": b"v2"})
    assert manager.sstable_count == 1
    assert manager.get(b"k1") == b"v1"
    assert manager.get(b"k2") == b"v2"
    assert manager.get(b"k3") is None


def test_flush_names_file_by_id(manager):
    metadata = manager.flush([(b"a", b"1")])
    assert metadata.path.name == "sstable_000001.sst"
    assert metadata.path.exists()
    assert manager.next_sstable_id == 2


def test_flush_returns_metadata(manager):
    metadata = manager.flush([(b"b", b"2"), (b"a", b"1"), (b"c", None)])
    assert metadata.entry_count == 3
    assert metadata.min_key == b"a"
    assert metadata.max_key == b"c"
    assert metadata.file_size == metadata.path.stat().st_size


def test_flush_empty_raises(manager):
    with pytest.raises(StorageError, match="Cannot flush empty MemTable"):
        manager.flush({})
    assert manager.sstable_count == 0


def test_newer_table_wins(manager):
    manager.flush({b"key": b"old", b"other": b"kept"})
    manager.flush({b"key": b"new"})
    assert manager.get(b"key") == b"new"
    assert manager.get(b"other") == b"kept"


def test_tombstone_hides_older_value(manager):
    manager.flush({b"key": b"value"})
    manager.flush({b"key": None})
    assert manager.get(b"key") is None


def test_key_outside_newest_range_found_in_older(manager):
    manager.flush({b"a": b"first"})
    manager.flush({b"m": b"x", b"z": b"y"})
    assert manager.get(b"a") == b"first"


def test_reopen_discovers_tables(tmp_path):
    directory = tmp_path / "data"
    first = StorageManager(directory)
    first.flush({b"user:1": b"Alice", b"user:2": b"Bob"})
    first.flush({b"user:2": None, b"user:4": b"Diana"})
    first.close()

    second = StorageManager(directory)
    try:
        assert second.sstable_count == 2
        assert second.next_sstable_id == 3
        assert second.get(b"user:1") == b"Alice"
        assert second.get(b"user:2") is None
        assert second.get(b"user:4") == b"Diana"
    finally:
        second.close()


def test_unrelated_files_ignored(tmp_path):
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "notes.txt").write_text("hello")
    (directory / "sstable_abc.sst").write_bytes(b"junk")
    (directory / "sstable_000007.sst").mkdir()
    mgr = StorageManager(directory)
    try:
        assert mgr.sstable_count == 0
        assert mgr.next_sstable_id == 1
    finally:
        mgr.close()


def test_corrupt_table_fails_open(tmp_path):
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "sstable_000001.sst").write_bytes(b"garbage-not-a-table-at-all")
    with pytest.raises(StorageError):
        StorageManager(directory)


def test_binary_keys(manager):
    key = b"\x00\x01\x02\xff\xfe"
    value = b"\xff\x00\xab\xcd\x00"
    manager.flush([(key, value)])
    assert manager.get(key) == value