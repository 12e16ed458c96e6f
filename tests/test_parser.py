"""Tests for the two-pass record parser."""

from ldaphound.ingestion.parser import RecordParser
from ldaphound.ingestion.storage import MemoryStorage

from builders import DOMAIN, DOMAIN_SID, make_domain_record, make_user_record


def test_parse_counts(parsed):
    results, index = parsed
    assert len(results.domains) == 1
    assert len(results.users) == 2
    assert len(results.groups) == 2
    assert len(results.computers) == 2
    assert len(results.ous) == 1
    assert len(results.gpos) == 1
    assert len(results.containers) == 2
    assert len(results.trusts) == 1


def test_domain_sid_reaches_records_decoded_before_the_domain():
    storage = MemoryStorage()
    storage.add(make_user_record("alice", 1104))
    storage.add(make_domain_record())
    parser = RecordParser(domain=DOMAIN, verbose=False)
    results, _ = parser.parse(storage)

    assert parser.domain_sid == DOMAIN_SID
    assert results.users[0].properties["domainsid"] == DOMAIN_SID


def test_unknown_and_bookkeeping_records_are_dropped(storage):
    parser = RecordParser(domain=DOMAIN, verbose=False)
    results, index = parser.parse(storage)
    assert parser.unknown_count == 1
    assert parser.skipped_count == 1
    assert not any("DOMAINUPDATES" in node.distinguished_name for node in results.all_nodes())


def test_missing_domain_record_is_reported():
    messages = []
    storage = MemoryStorage()
    storage.add(make_user_record("alice", 1104))
    parser = RecordParser(domain=DOMAIN, verbose=False, progress_callback=messages.append)
    results, _ = parser.parse(storage)
    assert results.users[0].properties["domainsid"] == "DOMAIN_SID"
    assert any("No domain record" in m for m in messages)


def test_progress_reporting():
    messages = []
    storage = MemoryStorage()
    for i in range(5):
        storage.add(make_user_record(f"user{i}", 3000 + i))
    parser = RecordParser(domain=DOMAIN, verbose=False, progress_callback=messages.append, report_every=2)
    parser.parse(storage, total=5)
    assert "[*] Parsed 2/5 records (40%)" in messages
    assert "[*] Parsed 4/5 records (80%)" in messages
