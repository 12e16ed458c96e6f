"""Tests for SID and GUID decoding."""

import uuid

from ldaphound.decoding.guid import decode_guid
from ldaphound.decoding.sid import decode_sid, domain_sid_of, find_embedded_sid

from builders import DOMAIN_SID, sid_bytes


def test_decode_domain_relative_sid():
    sid = f"{DOMAIN_SID}-1104"
    assert decode_sid(sid_bytes(sid)) == sid


def test_decode_sid_ignores_trailing_bytes():
    sid = f"{DOMAIN_SID}-500"
    assert decode_sid(sid_bytes(sid) + b"\x00\x00\x00\x00") == sid


def test_short_well_known_sid_is_qualified_with_domain():
    assert decode_sid(sid_bytes("S-1-5-32-544"), "corp.local") == "CORP.LOCAL-S-1-5-32-544"
    assert decode_sid(sid_bytes("S-1-5-11"), "corp.local") == "CORP.LOCAL-S-1-5-11"


def test_short_sid_without_domain_is_left_alone():
    assert decode_sid(sid_bytes("S-1-1-0")) == "S-1-1-0"


def test_long_sid_is_never_qualified():
    sid = f"{DOMAIN_SID}-512"
    assert decode_sid(sid_bytes(sid), "corp.local") == sid


def test_malformed_sid_decodes_to_empty():
    raw = sid_bytes(f"{DOMAIN_SID}-500")
    assert decode_sid(raw[:10]) == ""
    assert decode_sid(b"") == ""
    assert decode_sid(b"\x01") == ""


def test_domain_sid_of():
    assert domain_sid_of(f"{DOMAIN_SID}-512") == DOMAIN_SID
    assert domain_sid_of(DOMAIN_SID) == DOMAIN_SID
    assert domain_sid_of("CORP.LOCAL-S-1-5-32-544") is None
    assert domain_sid_of("S-1-5-11") is None


def test_find_embedded_sid():
    dn = f"CN={DOMAIN_SID}-1105,CN=FOREIGNSECURITYPRINCIPALS,DC=CORP,DC=LOCAL"
    assert find_embedded_sid(dn) == f"{DOMAIN_SID}-1105"
    assert find_embedded_sid("CN=ALICE,CN=USERS,DC=CORP,DC=LOCAL") is None


def test_decode_guid_byte_order():
    guid = "003049E2-00AA-A285-11D0-0DE6BF967ABA"
    raw = uuid.UUID(guid).bytes_le
    assert decode_guid(raw) == guid
    # First three fields are byte-reversed in storage
    assert raw[:4] == bytes.fromhex("E2493000")


def test_decode_guid_rejects_wrong_length():
    assert decode_guid(b"\x00" * 15) == ""
    assert decode_guid(None) == ""
