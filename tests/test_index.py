"""Tests for the cross-reference index and its read-only view."""

import pytest

from ldaphound.model.index import CrossReferenceIndex


def _make_index():
    index = CrossReferenceIndex()
    index.register("CN=alice,CN=Users,DC=CORP,DC=LOCAL", "S-1-5-21-1-2-3-1104", "User")
    index.register("CN=SRV01,OU=Servers,DC=CORP,DC=LOCAL", "S-1-5-21-1-2-3-1105", "Computer")
    index.register_host("srv01.corp.local", "S-1-5-21-1-2-3-1105")
    return index


def test_sentinel_is_never_indexed():
    index = CrossReferenceIndex()
    assert not index.register("CN=ghost,DC=CORP,DC=LOCAL", "SID", "User")
    assert not index.register("CN=ghost,DC=CORP,DC=LOCAL", "", "User")
    index.register_host("ghost.corp.local", "SID")
    assert len(index) == 0
    assert index.hostname_to_identifier == {}


def test_lookups_are_case_insensitive():
    view = _make_index().freeze()
    assert view.identifier_for_dn("cn=alice,cn=users,dc=corp,dc=local") == "S-1-5-21-1-2-3-1104"
    assert view.identifier_for_host("SRV01.corp.LOCAL") == "S-1-5-21-1-2-3-1105"
    assert view.dn_for_identifier("S-1-5-21-1-2-3-1104") == "CN=ALICE,CN=USERS,DC=CORP,DC=LOCAL"


def test_misses_return_defaults():
    view = _make_index().freeze()
    assert view.identifier_for_dn("CN=nobody,DC=CORP,DC=LOCAL") is None
    assert view.type_of("S-1-5-21-9-9-9-9", "Group") == "Group"
    assert view.identifier_for_host("nowhere") is None
    assert view.identifier_for_dn_fragment("NOT-THERE") is None


def test_identifiers_of_type_in_decode_order():
    index = _make_index()
    index.register("CN=SRV02,DC=CORP,DC=LOCAL", "S-1-5-21-1-2-3-1106", "Computer")
    view = index.freeze()
    assert view.identifiers_of_type("Computer") == ["S-1-5-21-1-2-3-1105", "S-1-5-21-1-2-3-1106"]


def test_dn_fragment_lookup():
    view = _make_index().freeze()
    assert view.identifier_for_dn_fragment("ou=servers") == "S-1-5-21-1-2-3-1105"


def test_addresses_only_for_known_hosts():
    index = _make_index()
    index.set_address("srv01.corp.local", "10.0.0.5")
    index.set_address("other.corp.local", "10.0.0.6")
    assert index.hostname_to_address == {"SRV01.CORP.LOCAL": "10.0.0.5"}


def test_frozen_index_rejects_writes():
    index = _make_index()
    view = index.freeze()
    with pytest.raises(RuntimeError):
        index.register("CN=late,DC=CORP,DC=LOCAL", "S-1-5-21-1-2-3-2000", "User")
    with pytest.raises(RuntimeError):
        index.set_address("srv01.corp.local", "10.0.0.5")
    with pytest.raises(TypeError):
        view.dn_to_identifier["X"] = "Y"
