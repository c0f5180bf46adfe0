import pytest

from atlaskv.errors import WalCorruptionError
from atlaskv.wal.entry import HEADER_SIZE, Delete, Put, WalEntry


def test_serialize_deserialize_put():
    entry = WalEntry.create(1, Put(b"hello", b"world"))
    recovered = WalEntry.deserialize(entry.serialize())
    assert recovered.lsn == entry.lsn
    assert recovered.operation == entry.operation
    assert recovered.timestamp == entry.timestamp


def test_serialize_deserialize_delete():
    entry = WalEntry.create(42, Delete(b"mykey"))
    assert WalEntry.deserialize(entry.serialize()) == entry


def test_serialize_deserialize_empty_key():
    entry = WalEntry.create(100, Put(b"", b"empty_key_value"))
    assert WalEntry.deserialize(entry.serialize()) == entry


def test_serialize_deserialize_empty_value():
    entry = WalEntry.create(101, Put(b"key_with_empty_value", b""))
    assert WalEntry.deserialize(entry.serialize()) == entry


def test_crc_corruption_detected():
    entry = WalEntry.create(1, Put(b"key", b"value"))
    data = bytearray(entry.serialize())
    data[-1] ^= 0xFF
    with pytest.raises(WalCorruptionError, match="CRC mismatch"):
        WalEntry.deserialize(bytes(data))


def test_crc_corruption_in_header_detected():
    entry = WalEntry.create(1, Put(b"key", b"value"))
    data = bytearray(entry.serialize())
    data[8] ^= 0xFF
    with pytest.raises(WalCorruptionError):
        WalEntry.deserialize(bytes(data))


def test_truncated_entry():
    entry = WalEntry.create(1, Delete(b"key"))
    data = entry.serialize()
    with pytest.raises(WalCorruptionError, match="Entry truncated"):
        WalEntry.deserialize(data[: HEADER_SIZE + 2])


def test_header_too_small():
    with pytest.raises(WalCorruptionError, match="Entry too small"):
        WalEntry.deserialize(bytes(10))


def test_empty_buffer():
    with pytest.raises(WalCorruptionError):
        WalEntry.deserialize(b"")


def test_large_value():
    large_value = b"\xab" * (1024 * 1024)
    entry = WalEntry.create(999, Put(b"big_key", large_value))
    recovered = WalEntry.deserialize(entry.serialize())
    assert recovered.operation == Put(b"big_key", large_value)


@pytest.mark.parametrize("lsn", [0, 1, 2**64 - 1, 12345678901234])
def test_lsn_preserved(lsn):
    entry = WalEntry.create(lsn, Delete(b"key"))
    assert WalEntry.deserialize(entry.serialize()).lsn == lsn


def test_serialized_size_matches():
    entry = WalEntry.create(1, Put(b"test_key", b"test_value"))
    assert len(entry.serialize()) == entry.serialized_size()


def test_compute_crc_consistency():
    entry = WalEntry.create(42, Put(b"key", b"value"))
    first = entry.compute_crc()
    second = entry.compute_crc()
    assert first == second
    assert first == int.from_bytes(entry.serialize()[8:12], "little")
    assert 0 <= first < 2**32


def test_header_layout():
    entry = WalEntry.create(42, Put(b"key", b"value"))
    data = entry.serialize()
    assert data[:8] == (42).to_bytes(8, "little")
    assert int.from_bytes(data[8:12], "little") == entry.compute_crc()
    assert int.from_bytes(data[12:16], "little") == len(data) - HEADER_SIZE


def test_operations_normalise_to_bytes():
    assert Put(bytearray(b"k"), bytearray(b"v")) == Put(b"k", b"v")
    assert Delete(bytearray(b"k")) == Delete(b"k")


def test_trailing_bytes_ignored():
    entry = WalEntry.create(7, Delete(b"key"))
    assert WalEntry.deserialize(entry.serialize() + b"extra") == entry