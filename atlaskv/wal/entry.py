"""Write-ahead log records and their checksummed binary form."""

from __future__ import annotations

import struct
import time
import zlib
from dataclasses import dataclass
from typing import Union

from atlaskv.errors import SerializationError, WalCorruptionError

HEADER_SIZE = 16
"""Bytes before the payload: LSN (8) + CRC (4) + length (4)."""

_PUT_TAG = 0
_DELETE_TAG = 1


@dataclass(frozen=True)
class Put:
    """Store ``value`` under ``key``."""

    key: bytes
    value: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", bytes(self.key))
        object.__setattr__(self, "value", bytes(self.value))


@dataclass(frozen=True)
class Delete:
    """Remove ``key``."""

    key: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", bytes(self.key))


Operation = Union[Put, Delete]


class _Decoder:
    """Reads little-endian fields from a byte buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    def take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise ValueError(
                f"unexpected end of data: need {size} bytes at offset {self._pos}"
            )
        chunk = bytes(self._data[self._pos:end])
        self._pos = end
        return chunk

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def blob(self) -> bytes:
        return self.take(self.u64())


def _encode_blob(blob: bytes) -> bytes:
    return struct.pack("<Q", len(blob)) + blob


def _checksum(lsn: int, data: bytes) -> int:
    return zlib.crc32(struct.pack("<QI", lsn, len(data)) + data)


@dataclass(frozen=True)
class WalEntry:
    """One log record: a sequence number, an operation and a timestamp."""

    lsn: int
    operation: Operation
    timestamp: int

    @classmethod
    def create(cls, lsn: int, operation: Operation) -> WalEntry:
        """Build an entry stamped with the current time in milliseconds."""
        return cls(lsn, operation, time.time_ns() // 1_000_000)

    def _encode_body(self) -> bytes:
        try:
            parts = [struct.pack("<Q", self.lsn)]
            match self.operation:
                case Put(key=key, value=value):
                    parts += [struct.pack("<I", _PUT_TAG), _encode_blob(key), _encode_blob(value)]
                case Delete(key=key):
                    parts += [struct.pack("<I", _DELETE_TAG), _encode_blob(key)]
                case other:
                    raise SerializationError(f"Unknown operation: {other!r}")
            parts.append(struct.pack("<Q", self.timestamp))
        except struct.error as exc:
            raise SerializationError(f"Failed to serialize WAL entry: {exc}") from exc
        return b"".join(parts)

    @staticmethod
    def _decode_body(data: bytes) -> WalEntry:
        decoder = _Decoder(data)
        lsn = decoder.u64()
        tag = decoder.u32()
        if tag == _PUT_TAG:
            key = decoder.blob()
            operation: Operation = Put(key, decoder.blob())
        elif tag == _DELETE_TAG:
            operation = Delete(decoder.blob())
        else:
            raise ValueError(f"invalid operation variant {tag}")
        return WalEntry(lsn, operation, decoder.u64())

    def serialize(self) -> bytes:
        """Encode as ``[LSN][CRC][Len][Data]``."""
        data = self._encode_body()
        crc = _checksum(self.lsn, data)
        return struct.pack("<QII", self.lsn, crc, len(data)) + data

    @classmethod
    def deserialize(cls, data: bytes) -> WalEntry:
        """Decode one entry, validating its length, checksum and LSN."""
        if len(data) < HEADER_SIZE:
            raise WalCorruptionError(
                f"Entry too small: {len(data)} bytes, expected at least {HEADER_SIZE}"
            )
        lsn, stored_crc, data_len = struct.unpack_from("<QII", data)
        expected_size = HEADER_SIZE + data_len
        if len(data) < expected_size:
            raise WalCorruptionError(
                f"Entry truncated: {len(data)} bytes, expected {expected_size}"
            )
        body = bytes(data[HEADER_SIZE:expected_size])
        computed_crc = _checksum(lsn, body)
        if computed_crc != stored_crc:
            raise WalCorruptionError(
                f"CRC mismatch for LSN {lsn}: stored={stored_crc:#x}, computed={computed_crc:#x}"
            )
        try:
            entry = cls._decode_body(body)
        except ValueError as exc:
            raise WalCorruptionError(f"Failed to deserialize WAL entry: {exc}") from exc
        if entry.lsn != lsn:
            raise WalCorruptionError(f"LSN mismatch: header={lsn}, data={entry.lsn}")
        return entry

    def serialized_size(self) -> int:
        """Total encoded size, header included."""
        return HEADER_SIZE + len(self._encode_body())

    def compute_crc(self) -> int:
        """CRC32 over the LSN, the payload length and the payload."""
        return _checksum(self.lsn, self._encode_body())