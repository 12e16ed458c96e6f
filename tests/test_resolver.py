"""Tests for the relationship resolver."""

from ldaphound.analysis.resolver import RelationshipResolver, synthesize_foreign_sid
from ldaphound.ingestion.parser import RecordParser
from ldaphound.ingestion.storage import MemoryStorage
from ldaphound.model.schemas import Trust

from builders import (
    ADMINISTRATOR_SID, ALICE_SID, CHILD_SID, COMPUTERS_GUID, DC01_SID, DOMAIN, DOMAIN_DN, DOMAIN_SID,
    FULL_CONTROL, GPO_GUID, SERVERS_DN, SERVERS_OU_GUID, SRV01_SID, UNKNOWN_PRINCIPAL, USERS_GUID,
    ace, make_cert_template_record, make_computer_record, make_domain_record, make_enterprise_ca_record,
    make_group_record, make_issuance_policy_record, make_ou_record, make_record, make_user_record,
    security_descriptor,
)


def _by_id(nodes):
    return {node.object_id: node for node in nodes}


def _pairs(members):
    return [(m.object_identifier, m.object_type) for m in members]


def test_group_members_resolved_and_cross_domain_synthesized(resolved):
    results, _ = resolved
    admins = _by_id(results.groups)[f"{DOMAIN_SID}-512"]
    assert _pairs(admins.members) == [
        (ALICE_SID, "User"),
        ("CHILD.CORP.LOCAL-512", "Group"),
    ]


def test_synthesize_foreign_sid():
    trusts = [Trust(target_domain_name="CHILD.CORP.LOCAL")]
    assert synthesize_foreign_sid(
        "CN=ADMINISTRATEURS DU DOMAINE,CN=USERS,DC=CHILD,DC=CORP,DC=LOCAL", trusts) == "CHILD.CORP.LOCAL-512"
    fsp = f"CN={DOMAIN_SID}-1234,CN=FOREIGNSECURITYPRINCIPALS,DC=CORP,DC=LOCAL"
    assert synthesize_foreign_sid(fsp, trusts) == f"{DOMAIN_SID}-1234"
    assert synthesize_foreign_sid("CN=NOBODY,DC=ELSEWHERE", trusts) == "CN=NOBODY,DC=ELSEWHERE"


def test_delegation_and_sql_targets(resolved):
    results, _ = resolved
    alice = _by_id(results.users)[ALICE_SID]
    assert alice.spn_targets[0].computer_sid == SRV01_SID


def test_enterprise_domain_controllers(resolved):
    results, _ = resolved
    edc = _by_id(results.groups)["CORP.LOCAL-S-1-5-9"]
    assert edc.name == "ENTERPRISE DOMAIN CONTROLLERS@CORP.LOCAL"
    assert _pairs(edc.members) == [(DC01_SID, "Computer")]


def test_everyone_and_authenticated_users(resolved):
    results, _ = resolved
    groups = _by_id(results.groups)
    expected = [(f"{DOMAIN_SID}-515", "Group"), (f"{DOMAIN_SID}-513", "Group")]
    assert _pairs(groups["CORP.LOCAL-S-1-1-0"].members) == expected
    assert _pairs(groups["CORP.LOCAL-S-1-5-11"].members) == expected


def test_builtin_group_merged_not_duplicated(resolved):
    results, _ = resolved
    ids = [group.object_id for group in results.groups]
    assert ids.count("CORP.LOCAL-S-1-5-32-544") == 1
    administrators = _by_id(results.groups)["CORP.LOCAL-S-1-5-32-544"]
    assert _pairs(administrators.members) == [(ADMINISTRATOR_SID, "User")]
    assert administrators.properties["highvalue"] is True
    # 2 decoded groups + 12 built-ins - 1 merged
    assert len(results.groups) == 13


def test_nt_authority_user(resolved):
    results, _ = resolved
    nt_authority = _by_id(results.users)["CORP.LOCAL-S-1-5-20"]
    assert nt_authority.name == "NT AUTHORITY@CORP.LOCAL"
    assert nt_authority.properties["domainsid"] == DOMAIN_SID


def test_ace_principal_types(resolved):
    results, _ = resolved
    domain = results.domains[0]
    assert [(a.principal_sid, a.right_name, a.principal_type) for a in domain.aces] == [
        (f"{DOMAIN_SID}-512", "Owns", "Group"),
        (ALICE_SID, "GetChangesAll", "User"),
        ("CORP.LOCAL-S-1-5-32-544", "GenericAll", "Group"),
        (UNKNOWN_PRINCIPAL, "GenericAll", "Group"),
    ]


def test_ace_backfill_is_idempotent(resolved):
    results, resolver = resolved
    before = [(a.principal_sid, a.principal_type) for node in results.all_nodes() for a in node.aces]
    resolver.resolve_ace_types(results)
    after = [(a.principal_sid, a.principal_type) for node in results.all_nodes() for a in node.aces]
    assert before == after


def test_domain_child_objects(resolved):
    results, _ = resolved
    domain = results.domains[0]
    assert _pairs(domain.child_objects) == [
        (USERS_GUID, "Container"),
        (COMPUTERS_GUID, "Container"),
        (SERVERS_OU_GUID, "OU"),
    ]


def test_ou_containment_round_trip(resolved):
    results, _ = resolved
    ou = _by_id(results.ous)[SERVERS_OU_GUID]
    srv01 = _by_id(results.computers)[SRV01_SID]
    assert _pairs(ou.child_objects) == [(SRV01_SID, "Computer")]
    assert srv01.contained_by.object_identifier == SERVERS_OU_GUID
    assert srv01.contained_by.object_type == "OU"
    assert _pairs(ou.gpo_changes.affected_computers) == [(SRV01_SID, "Computer")]


def test_contained_by(resolved):
    results, _ = resolved
    alice = _by_id(results.users)[ALICE_SID]
    assert (alice.contained_by.object_identifier, alice.contained_by.object_type) == (USERS_GUID, "Container")
    assert results.domains[0].contained_by is None


def test_domain_affected_computers(resolved):
    results, _ = resolved
    assert _pairs(results.domains[0].gpo_changes.affected_computers) == [
        (DC01_SID, "Computer"),
        (SRV01_SID, "Computer"),
    ]


def test_gpo_links_resolved(resolved):
    results, _ = resolved
    assert [(l.guid, l.is_enforced) for l in results.domains[0].links] == [(GPO_GUID, False)]
    assert [(l.guid, l.is_enforced) for l in results.ous[0].links] == [(GPO_GUID, True)]


def test_trusted_domains_materialized(resolved):
    results, resolver = resolved
    assert [d.object_id for d in results.domains] == [DOMAIN_SID, CHILD_SID]
    child = results.domains[1]
    assert child.name == "CHILD.CORP.LOCAL"
    assert child.distinguished_name == "DC=CHILD,DC=CORP,DC=LOCAL"
    assert [t.target_domain_sid for t in results.domains[0].trusts] == [CHILD_SID]
    assert resolver.type_of(CHILD_SID, "Group") == "Domain"


def _resolve(records):
    storage = MemoryStorage()
    for record in records:
        storage.add(record)
    results, index = RecordParser(domain=DOMAIN, verbose=False).parse(storage)
    RelationshipResolver(domain=DOMAIN, view=index.freeze(), verbose=False).resolve(results)
    return results


def test_minimal_domain_with_dc():
    results = _resolve([make_domain_record(), make_computer_record("DC01", 1000, dc=True)])
    groups = _by_id(results.groups)
    assert _pairs(groups["CORP.LOCAL-S-1-5-9"].members) == [(DC01_SID, "Computer")]
    assert len(results.groups) == 12
    assert "CORP.LOCAL-S-1-5-20" in _by_id(results.users)


def test_domain_sid_falls_back_to_domain_controller():
    results = _resolve([make_computer_record("DC01", 1000, dc=True)])
    everyone = _by_id(results.groups)["CORP.LOCAL-S-1-1-0"]
    assert _pairs(everyone.members)[0] == (f"{DOMAIN_SID}-515", "Group")


def test_unknown_domain_sid_leaves_implicit_members_out():
    results = _resolve([make_user_record("alice", 1104, container=f"CN=USERS,{DOMAIN_DN}")])
    groups = _by_id(results.groups)
    assert groups["CORP.LOCAL-S-1-1-0"].members == []
    # NT AUTHORITY falls back to the first user's domain SID placeholder
    assert "CORP.LOCAL-S-1-5-20" in _by_id(results.users)


def test_trusts_without_target_sid_are_not_materialized():
    results = _resolve([
        make_domain_record(),
        make_record(f"CN=old.local,CN=System,{DOMAIN_DN}", ["top", "trustedDomain"], name="old.local"),
    ])
    assert len(results.domains) == 1
    assert results.domains[0].trusts == []


USER_TEMPLATE_GUID = "61000000-0000-0000-0000-000000000001"
WEB_TEMPLATE_GUID = "61000000-0000-0000-0000-000000000002"
SPARE_TEMPLATE_GUID = "61000000-0000-0000-0000-000000000003"
CA_GUID = "62000000-0000-0000-0000-000000000001"
POLICY_GUID = "63000000-0000-0000-0000-000000000001"
ORPHAN_POLICY_GUID = "63000000-0000-0000-0000-000000000002"


def _make_pki_records():
    return [
        make_domain_record(),
        make_group_record("PKI Admins", 1200),
        make_cert_template_record("User", USER_TEMPLATE_GUID),
        make_cert_template_record("WebServer", WEB_TEMPLATE_GUID, display_name="Web Server"),
        make_cert_template_record("Spare", SPARE_TEMPLATE_GUID),
        make_enterprise_ca_record("CORP-CA", CA_GUID, templates=["user", "Web Server", "Retired"]),
        make_issuance_policy_record("High Assurance", POLICY_GUID, group_dn=f"CN=PKI Admins,CN=Users,{DOMAIN_DN}"),
        make_issuance_policy_record(
            "Orphaned", ORPHAN_POLICY_GUID, group_dn=f"CN=Gone,CN=Users,{DOMAIN_DN}",
        ),
    ]


def test_published_templates_resolved_by_name_or_display_name():
    results = _resolve(_make_pki_records())
    ca = _by_id(results.enterprise_cas)[CA_GUID]
    assert _pairs(ca.enabled_cert_templates) == [
        (USER_TEMPLATE_GUID, "CertTemplate"),
        (WEB_TEMPLATE_GUID, "CertTemplate"),
        ("Retired", "CertTemplate"),
    ]


def test_published_templates_are_enabled():
    templates = _by_id(_resolve(_make_pki_records()).cert_templates)
    assert templates[USER_TEMPLATE_GUID].properties["enabled"] is True
    assert templates[WEB_TEMPLATE_GUID].properties["enabled"] is True
    assert templates[SPARE_TEMPLATE_GUID].properties["enabled"] is False


def test_issuance_policy_group_link_resolved():
    policies = _by_id(_resolve(_make_pki_records()).issuance_policies)
    link = policies[POLICY_GUID].group_link
    assert (link.object_identifier, link.object_type) == (f"{DOMAIN_SID}-1200", "Group")
    orphan = policies[ORPHAN_POLICY_GUID].group_link
    assert orphan.object_identifier == f"CN=GONE,CN=USERS,{DOMAIN_DN}"


def test_allowed_to_act_principal_types():
    descriptor = security_descriptor(aces=[ace(ALICE_SID, FULL_CONTROL), ace(UNKNOWN_PRINCIPAL, FULL_CONTROL)])
    results = _resolve([
        make_domain_record(),
        make_user_record("alice", 1104),
        make_computer_record(
            "SRV01", 1105, binary={"msDS-AllowedToActOnBehalfOfOtherIdentity": [descriptor]},
        ),
    ])
    srv01 = _by_id(results.computers)[SRV01_SID]
    assert _pairs(srv01.allowed_to_act) == [(ALICE_SID, "User"), (UNKNOWN_PRINCIPAL, "Computer")]


NESTED_OU_GUID = "34000000-0000-0000-0000-000000000001"
WEB01_SID = f"{DOMAIN_SID}-1300"


def test_nested_ou_containment():
    results = _resolve([
        make_domain_record(),
        make_ou_record("Servers", SERVERS_OU_GUID),
        make_ou_record("Web", NESTED_OU_GUID, parent=SERVERS_DN),
        make_computer_record("WEB01", 1300, container=f"OU=Web,{SERVERS_DN}"),
    ])
    ous = _by_id(results.ous)
    servers, web = ous[SERVERS_OU_GUID], ous[NESTED_OU_GUID]

    assert (web.contained_by.object_identifier, web.contained_by.object_type) == (SERVERS_OU_GUID, "OU")
    assert _pairs(servers.child_objects) == [(NESTED_OU_GUID, "OU")]
    assert _pairs(web.child_objects) == [(WEB01_SID, "Computer")]
    assert _pairs(servers.gpo_changes.affected_computers) == [(WEB01_SID, "Computer")]
    assert _pairs(web.gpo_changes.affected_computers) == [(WEB01_SID, "Computer")]


def test_index_agrees_with_every_decoded_node(parsed):
    results, index = parsed
    view = index.freeze()
    dns_by_identifier = {}
    for dn, identifier in view.dn_to_identifier.items():
        dns_by_identifier.setdefault(identifier, []).append(dn)

    nodes = list(results.all_nodes())
    assert nodes
    for node in nodes:
        assert view.identifier_to_type[node.object_id] == node.node_type.value
        assert dns_by_identifier[node.object_id] == [node.distinguished_name.upper()]
