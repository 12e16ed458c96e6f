from ldaphound.model.graph_builder import ADGraph
from ldaphound.model.results import ADResults
from ldaphound.model.schemas import ADEdge, EdgeType, Group, IssuancePolicy, Member, NodeType

from builders import (
    ALICE_SID, CHILD_SID, DOMAIN_SID, GPO_GUID, SERVERS_OU_GUID, SRV01_SID,
    UNKNOWN_PRINCIPAL, USERS_GUID,
)


def _make_graph(resolved):
    results, _ = resolved
    return ADGraph.from_results(results)


def test_every_resolved_node_is_in_the_graph(resolved):
    results, _ = resolved
    graph = ADGraph.from_results(results)
    for node in results.all_nodes():
        if not node.is_resolved:
            continue
        assert graph.get_node(node.object_id) is node
    assert len(list(graph.get_nodes_by_type(NodeType.COMPUTER))) == 2


def test_membership_edges(resolved):
    graph = _make_graph(resolved)
    edge = graph.get_edge(ALICE_SID, f"{DOMAIN_SID}-512", EdgeType.MEMBER_OF)
    assert edge is not None
    assert edge.edge_type == EdgeType.MEMBER_OF


def test_ace_edges_point_at_the_secured_object(resolved):
    graph = _make_graph(resolved)
    owns = graph.get_edge(f"{DOMAIN_SID}-512", DOMAIN_SID, EdgeType.OWNS)
    assert owns is not None
    assert owns.properties["is_inherited"] is False
    assert graph.get_edge(ALICE_SID, DOMAIN_SID, EdgeType.GET_CHANGES_ALL) is not None
    assert {e.edge_type for e in graph.get_incoming_edges(DOMAIN_SID)} >= {
        EdgeType.OWNS, EdgeType.GET_CHANGES_ALL, EdgeType.GENERIC_ALL, EdgeType.GP_LINK, EdgeType.TRUSTED_BY,
    }


def test_structure_edges(resolved):
    graph = _make_graph(resolved)
    assert graph.get_edge(USERS_GUID, ALICE_SID, EdgeType.CONTAINS) is not None
    assert graph.get_edge(SERVERS_OU_GUID, SRV01_SID, EdgeType.CONTAINS) is not None
    assert graph.get_edge(GPO_GUID, DOMAIN_SID, EdgeType.GP_LINK).properties["is_enforced"] is False
    assert graph.get_edge(GPO_GUID, SERVERS_OU_GUID, EdgeType.GP_LINK).properties["is_enforced"] is True
    assert graph.get_edge(CHILD_SID, DOMAIN_SID, EdgeType.TRUSTED_BY) is not None
    assert graph.get_edge(ALICE_SID, SRV01_SID, EdgeType.SQL_ADMIN).properties["port"] == 1433


def test_unresolvable_endpoints_become_unknown_nodes(resolved):
    graph = _make_graph(resolved)
    unknown = graph.unknown_nodes()
    assert UNKNOWN_PRINCIPAL in unknown
    assert "CHILD.CORP.LOCAL-512" in unknown
    assert CHILD_SID not in unknown
    assert graph.nx_graph.nodes[UNKNOWN_PRINCIPAL]["node_type"] == NodeType.UNKNOWN
    assert graph.get_node(UNKNOWN_PRINCIPAL) is None


def test_parallel_rights_are_kept():
    graph = ADGraph()
    graph.add_edge(ADEdge("S-1-5-21-1-2-3-1104", "S-1-5-21-1-2-3-512", EdgeType.GENERIC_ALL))
    graph.add_edge(ADEdge("S-1-5-21-1-2-3-1104", "S-1-5-21-1-2-3-512", EdgeType.WRITE_DACL))
    graph.add_edge(ADEdge("S-1-5-21-1-2-3-1104", "S-1-5-21-1-2-3-512", EdgeType.WRITE_DACL))

    assert graph.edge_count == 2
    assert graph.node_count == 2
    assert len(list(graph.get_outgoing_edges("S-1-5-21-1-2-3-1104"))) == 2


def test_lookup_by_name_is_case_insensitive(resolved):
    graph = _make_graph(resolved)
    assert graph.get_node_by_name("alice@corp.local").object_id == ALICE_SID
    assert graph.get_node_by_name("nobody@corp.local") is None


def test_to_dict_summary(resolved):
    summary = _make_graph(resolved).to_dict()
    assert summary["nodes_by_type"]["Domain"] == 2
    assert summary["edges_by_type"]["MemberOf"] >= 3
    assert summary["unknown_nodes"] >= 2
    assert summary["nodes"] > 0
    assert summary["edges"] > 0


def test_issuance_policy_group_link_edge():
    results = ADResults()
    group = Group(object_id="S-1-5-21-1-2-3-1200", name="PKI ADMINS@CORP.LOCAL")
    policy = IssuancePolicy(object_id="63000000-0000-0000-0000-000000000001", name="HIGH ASSURANCE@CORP.LOCAL")
    policy.group_link = Member(group.object_id, "Group")
    results.groups.append(group)
    results.issuance_policies.append(policy)

    graph = ADGraph.from_results(results)
    edge = graph.get_edge(policy.object_id, group.object_id, EdgeType.OID_GROUP_LINK)
    assert edge is not None
    assert edge.properties == {}
    assert graph.to_dict()["edges_by_type"] == {"OIDGroupLink": 1}
    assert graph.unknown_nodes() == []
