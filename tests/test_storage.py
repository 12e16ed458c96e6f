"""Tests for raw records and the storage sinks."""

import pytest

from ldaphound.errors import StorageError, StoreCorruptionError
from ldaphound.ingestion.records import LdapRecord
from ldaphound.ingestion.storage import DiskStorage, DiskStorageReader, MemoryStorage

from builders import DOMAIN_SID, make_user_record, sid_bytes


def _make_records(count):
    return [make_user_record(f"user{i}", 2000 + i, description=f"déscription {i}") for i in range(count)]


def _write_cache(path, records):
    writer = DiskStorage(path, capacity=100)
    for record in records:
        writer.add(record)
    writer.into_reader().close()


def test_record_lookups_are_case_insensitive():
    record = LdapRecord(
        dn="CN=alice,DC=CORP,DC=LOCAL",
        attributes={"sAMAccountName": ["alice"], "servicePrincipalName": ["a/b", "c/d"]},
        binary_attributes={"objectSid": [b"\x01"]},
    )
    assert record.first("samaccountname") == "alice"
    assert record.values("SERVICEPRINCIPALNAME") == ["a/b", "c/d"]
    assert record.first_binary("OBJECTSID") == b"\x01"
    assert record.first("missing", "x") == "x"
    assert record.values("missing") == []
    assert record.has("objectsid")
    assert not record.has("mail")


def test_from_ldap3_splits_binary_values():
    sid = sid_bytes(f"{DOMAIN_SID}-1104")
    entry = {
        "dn": "CN=alice,DC=CORP,DC=LOCAL",
        "type": "searchResEntry",
        "raw_attributes": {
            "objectClass": [b"top", b"user"],
            "objectSid": [sid],
            "description": [b"caf\xc3\xa9"],
            "msExchBlob": [b"\xff\xfe\x00"],
            "empty": [],
        },
    }
    record = LdapRecord.from_ldap3(entry)
    assert record.object_classes == ["top", "user"]
    assert record.first_binary("objectSid") == sid
    assert record.first("description") == "café"
    assert record.first_binary("msExchBlob") == b"\xff\xfe\x00"
    assert not record.has("empty")


def test_memory_storage_replays_in_order():
    storage = MemoryStorage()
    records = _make_records(3)
    for record in records:
        storage.add(record)
    assert list(storage) == records
    assert list(storage) == records
    assert storage.total == 3


def test_disk_storage_round_trip(tmp_path):
    path = tmp_path / "corp.local" / "searched_objects.bin"
    records = _make_records(5)
    writer = DiskStorage(path, capacity=2)
    for record in records:
        writer.add(record)
    reader = writer.into_reader()

    assert writer.finished
    assert reader.total == 5
    assert list(reader) == records
    # Re-iterable for the second parse pass
    assert list(reader) == records
    reader.close()
    assert not writer.temp_path.exists()


def test_disk_storage_resume(tmp_path):
    path = tmp_path / "searched_objects.bin"
    records = _make_records(4)
    _write_cache(path, records)

    with DiskStorageReader.open(path) as reader:
        assert reader.total is None
        assert list(reader) == records


def test_unfinished_writer_leaves_existing_cache_untouched(tmp_path):
    path = tmp_path / "searched_objects.bin"
    _write_cache(path, _make_records(3))
    before = path.read_bytes()

    with DiskStorage(path, capacity=1) as writer:
        for record in _make_records(5):
            writer.add(record)
        assert writer.temp_path.exists()

    assert path.read_bytes() == before
    assert not writer.temp_path.exists()


def test_unfinished_writer_without_prior_cache_leaves_nothing(tmp_path):
    path = tmp_path / "searched_objects.bin"
    writer = DiskStorage(path)
    writer.add(_make_records(1)[0])
    writer.close()
    assert not path.exists()
    assert list(tmp_path.iterdir()) == []


def test_write_after_finalize_fails(tmp_path):
    writer = DiskStorage(tmp_path / "cache.bin")
    writer.add(_make_records(1)[0])
    writer.into_reader().close()
    with pytest.raises(StorageError):
        writer.add(_make_records(1)[0])
    with pytest.raises(StorageError):
        writer.into_reader()


def test_truncated_file_is_reported(tmp_path):
    path = tmp_path / "cache.bin"
    _write_cache(path, _make_records(2))
    data = path.read_bytes()
    path.write_bytes(data[:-3])

    with DiskStorageReader.open(path) as reader:
        with pytest.raises(StoreCorruptionError):
            list(reader)


def test_truncated_length_prefix_is_reported(tmp_path):
    path = tmp_path / "cache.bin"
    _write_cache(path, _make_records(1))
    path.write_bytes(path.read_bytes() + b"\x01\x00")

    with DiskStorageReader.open(path) as reader:
        with pytest.raises(StoreCorruptionError):
            list(reader)


def test_missing_cache_file(tmp_path):
    with pytest.raises(StorageError):
        DiskStorageReader.open(tmp_path / "nope.bin")
