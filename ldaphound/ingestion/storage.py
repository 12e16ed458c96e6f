"""
Record storage sinks.

The collector hands records one at a time to a Storage sink. Two sinks share
that interface:

- MemoryStorage keeps records in a list
- DiskStorage appends them to a length-prefixed binary file so result sets
  larger than memory can be decoded, and so a run can be resumed later

File layout:
    .ldaphound-cache/{domain}/searched_objects.bin
    [u32 little-endian length][payload] repeated

Payload layout (all integers little-endian):
    u32 len + DN (UTF-8)
    u32 text attribute count, each: u16 len + name, u32 value count, each: u32 len + value
    u32 binary attribute count, same shape with raw bytes as values

Lifecycle:
    writer = DiskStorage(path)       # writes to path + ".tmp"
    writer.add(record)               # buffered, flushed every `capacity` records
    reader = writer.into_reader()    # flushes, replaces path, writer is finished
    for record in reader: ...        # lazy, re-iterable

    A writer closed without into_reader() discards the temp file and leaves
    an existing cache at `path` as it was.
"""

import os
import struct
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .records import LdapRecord
from ..errors import StorageError, StoreCorruptionError

_LENGTH = struct.Struct("<I")
_NAME_LENGTH = struct.Struct("<H")


# ---------------------------------------------------------------------------
# Payload encoding
# ---------------------------------------------------------------------------

def _put_blob(out: bytearray, data: bytes) -> None:
    out += _LENGTH.pack(len(data))
    out += data


def _put_attributes(out: bytearray, attributes: dict, encode: bool) -> None:
    out += _LENGTH.pack(len(attributes))
    for name, values in attributes.items():
        encoded_name = name.encode("utf-8")
        out += _NAME_LENGTH.pack(len(encoded_name))
        out += encoded_name
        out += _LENGTH.pack(len(values))
        for value in values:
            _put_blob(out, value.encode("utf-8") if encode else bytes(value))


def encode_record(record: LdapRecord, out: bytearray) -> bytearray:
    """Serialize a record into ``out`` (cleared first) and return it."""
    out.clear()
    _put_blob(out, record.dn.encode("utf-8"))
    _put_attributes(out, record.attributes, encode=True)
    _put_attributes(out, record.binary_attributes, encode=False)
    return out


class _PayloadReader:
    """Cursor over one record payload."""

    def __init__(self, payload: bytes):
        self.payload = payload
        self.offset = 0

    def _unpack(self, fmt: struct.Struct) -> int:
        value = fmt.unpack_from(self.payload, self.offset)[0]
        self.offset += fmt.size
        return value

    def blob(self, length_format: struct.Struct = _LENGTH) -> bytes:
        length = self._unpack(length_format)
        end = self.offset + length
        if end > len(self.payload):
            raise StoreCorruptionError(f"value overruns payload ({end} > {len(self.payload)})")
        data = self.payload[self.offset:end]
        self.offset = end
        return data

    def attributes(self, decode: bool) -> dict:
        attributes = {}
        for _ in range(self._unpack(_LENGTH)):
            name = self.blob(_NAME_LENGTH).decode("utf-8")
            count = self._unpack(_LENGTH)
            values = [self.blob() for _ in range(count)]
            attributes[name] = [v.decode("utf-8") for v in values] if decode else values
        return attributes


def decode_record(payload: bytes) -> LdapRecord:
    """Deserialize a record payload.

    Raises:
        StoreCorruptionError: If the payload is truncated or not valid
    """
    reader = _PayloadReader(payload)
    try:
        dn = reader.blob().decode("utf-8")
        attributes = reader.attributes(decode=True)
        binary_attributes = reader.attributes(decode=False)
    except (struct.error, UnicodeDecodeError) as e:
        raise StoreCorruptionError(f"cannot decode cached record: {e}") from e
    if reader.offset != len(payload):
        raise StoreCorruptionError(f"{len(payload) - reader.offset} trailing bytes after cached record")
    return LdapRecord(dn=dn, attributes=attributes, binary_attributes=binary_attributes)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------

class Storage:
    """Sink interface the collector streams records into."""

    def add(self, record: LdapRecord) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        """Push buffered records to their backing store."""

    def finish(self) -> None:
        """Flush and mark the end of collection."""
        self.flush()


class MemoryStorage(Storage):
    """In-memory sink; iterating it replays records in insertion order."""

    def __init__(self):
        self.records: list[LdapRecord] = []

    def add(self, record: LdapRecord) -> None:
        self.records.append(record)

    def __iter__(self) -> Iterator[LdapRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def total(self) -> Optional[int]:
        return len(self.records)


class DiskStorage(Storage):
    """Buffered writer for the length-prefixed record file.

    Records go to a sibling ``.tmp`` file; ``path`` is only replaced once
    into_reader() finalizes the run.

    Args:
        path: Cache file path (parent directories are created)
        capacity: Records buffered in memory before a flush
    """

    def __init__(self, path, capacity: int = 1000):
        self.path = Path(path)
        self.temp_path = self.path.with_name(self.path.name + ".tmp")
        self.capacity = max(1, capacity)
        self.count = 0
        self._buffer: list[LdapRecord] = []
        self._encode_buffer = bytearray()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file: Optional[BinaryIO] = open(self.temp_path, "w+b")
        except OSError as e:
            raise StorageError(f"cannot create cache file {self.temp_path}: {e}") from e

    @property
    def finished(self) -> bool:
        return self._file is None

    def add(self, record: LdapRecord) -> None:
        if self._file is None:
            raise StorageError(f"cache writer for {self.path} is already finalized")
        self._buffer.append(record)
        self.count += 1
        if len(self._buffer) >= self.capacity:
            self.flush()

    def flush(self) -> None:
        if self._file is None or not self._buffer:
            return
        try:
            for record in self._buffer:
                payload = encode_record(record, self._encode_buffer)
                self._file.write(_LENGTH.pack(len(payload)))
                self._file.write(payload)
            self._file.flush()
        except OSError as e:
            raise StorageError(f"cannot write cache file {self.path}: {e}") from e
        self._buffer.clear()

    def into_reader(self) -> "DiskStorageReader":
        """Finalize the writer, move the temp file onto ``path`` and return a reader over it.

        The writer cannot be written to afterwards.
        """
        if self._file is None:
            raise StorageError(f"cache writer for {self.path} is already finalized")
        self.flush()
        handle, self._file = self._file, None
        try:
            with handle:
                os.fsync(handle.fileno())
            os.replace(self.temp_path, self.path)
        except OSError as e:
            self.temp_path.unlink(missing_ok=True)
            raise StorageError(f"cannot replace cache file {self.path}: {e}") from e
        reader = DiskStorageReader.open(self.path)
        reader.total = self.count
        return reader

    def close(self) -> None:
        """Discard the temp file without touching ``path``."""
        if self._file is not None:
            self._file.close()
            self._file = None
            self._buffer.clear()
            self.temp_path.unlink(missing_ok=True)

    def __enter__(self) -> "DiskStorage":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DiskStorageReader:
    """Lazy reader over a record file.

    Each iteration starts from the beginning of the file, so the reader can
    be walked more than once (the parser makes two passes).

    Attributes:
        total: Number of records when known, None when resuming from an
            existing file
    """

    def __init__(self, handle: BinaryIO, total: Optional[int] = None, path: Optional[Path] = None):
        self._file = handle
        self.total = total
        self.path = path

    @classmethod
    def open(cls, path) -> "DiskStorageReader":
        """Open an existing cache file for replay."""
        path = Path(path)
        try:
            handle = open(path, "rb")
        except OSError as e:
            raise StorageError(f"cannot open cache file {path}: {e}") from e
        return cls(handle, total=None, path=path)

    def __iter__(self) -> Iterator[LdapRecord]:
        if self._file is None:
            raise StorageError("cache reader is closed")
        self._file.seek(0)
        while True:
            prefix = self._file.read(_LENGTH.size)
            if not prefix:
                return
            if len(prefix) < _LENGTH.size:
                raise StoreCorruptionError(f"truncated length prefix at offset {self._file.tell() - len(prefix)}")
            length = _LENGTH.unpack(prefix)[0]
            payload = self._file.read(length)
            if len(payload) < length:
                raise StoreCorruptionError(f"truncated record: expected {length} bytes, got {len(payload)}")
            yield decode_record(payload)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "DiskStorageReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
