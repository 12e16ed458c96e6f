"""
ldapHound Graph Builder
=======================

NetworkX-based projection of the resolved collections.

Design Decisions:
-----------------
1. Uses a NetworkX MultiDiGraph; two objects can be linked by several
   relationships at once (GenericAll and WriteDacl from the same principal),
   so each edge is keyed by its type
2. Nodes are stored with their full ADNode data as attributes
3. Edges are stored with ADEdge data as attributes
4. Only resolved identifiers become nodes; an edge endpoint that is not a
   collected object is added as an UNKNOWN node
5. Lookup tables by node type, lower-cased name and edge type are kept
   beside the networkx graph

Edge directions follow the flow of control:
- MemberOf: member -> group
- Contains: parent -> child
- GPLink: GPO -> domain/OU
- ACL permissions: principal -> object

The graph is a read-only view built after resolution; the collections stay
the export boundary.
"""

import networkx as nx
from typing import Iterator, Optional
from collections import defaultdict

from .results import ADResults
from .schemas import (
    ADNode, ADEdge, NodeType, EdgeType,
    User, Group, Computer, Domain, OU, EnterpriseCA, IssuancePolicy,
)


class ADGraph:
    """Abstraction layer over NetworkX for the resolved AD graph.

    Example Usage:
        graph = ADGraph.from_results(results)
        admins = list(graph.get_nodes_by_type(NodeType.GROUP))
        edges = list(graph.get_edges_by_type(EdgeType.GENERIC_ALL))
    """

    def __init__(self):
        """Empty graph; populate it with from_results or add_node/add_edge."""
        self._graph = nx.MultiDiGraph()

        # Lookup tables kept next to the networkx graph
        self._nodes_by_type: dict[NodeType, set[str]] = defaultdict(set)
        self._nodes_by_name: dict[str, str] = {}  # name.lower() -> object_id
        self._edges_by_type: dict[EdgeType, set[tuple]] = defaultdict(set)

    @property
    def nx_graph(self) -> nx.MultiDiGraph:
        """The wrapped MultiDiGraph, for networkx algorithms."""
        return self._graph

    @classmethod
    def from_results(cls, results: ADResults) -> "ADGraph":
        """Build the graph from resolved collections.

        Args:
            results: Collections after every resolver pass

        Returns:
            Populated ADGraph
        """
        graph = cls()
        for node in results.all_nodes():
            if node.is_resolved:
                graph.add_node(node)
        for node in results.all_nodes():
            if node.is_resolved:
                for edge in _edges_of(node):
                    graph.add_edge(edge)
        return graph

    def add_node(self, node: ADNode) -> None:
        """Insert a resolved node keyed by its identifier.

        Args:
            node: Any ADNode subclass; the object itself is kept as ``node_obj``
        """
        self._graph.add_node(
            node.object_id,
            node_obj=node,
            node_type=node.node_type,
            name=node.name,
            domain=node.domain,
        )

        self._nodes_by_type[node.node_type].add(node.object_id)
        if node.name:
            self._nodes_by_name[node.name.lower()] = node.object_id

    def add_edge(self, edge: ADEdge) -> None:
        """Insert a relationship, keyed by its edge type.

        Adding the same (source, target, type) twice keeps one edge. Endpoints
        that are not collected objects are added as bare UNKNOWN nodes.

        Args:
            edge: Relationship to insert
        """
        if not self._graph.has_node(edge.source_id):
            self._graph.add_node(edge.source_id, node_type=NodeType.UNKNOWN)
        if not self._graph.has_node(edge.target_id):
            self._graph.add_node(edge.target_id, node_type=NodeType.UNKNOWN)

        self._graph.add_edge(
            edge.source_id,
            edge.target_id,
            key=edge.edge_type.value,
            edge_obj=edge,
            edge_type=edge.edge_type,
            **edge.properties
        )

        self._edges_by_type[edge.edge_type].add((edge.source_id, edge.target_id))

    def get_node(self, object_id: str) -> Optional[ADNode]:
        """Node for an identifier (SID or GUID).

        Returns:
            ADNode object or None if not found (or only known as an edge endpoint)
        """
        if not self._graph.has_node(object_id):
            return None
        return self._graph.nodes[object_id].get('node_obj')

    def get_node_by_name(self, name: str) -> Optional[ADNode]:
        """Get a node by its name (case-insensitive)."""
        object_id = self._nodes_by_name.get(name.lower())
        if object_id:
            return self.get_node(object_id)
        return None

    def get_edge(self, source_id: str, target_id: str, edge_type: EdgeType) -> Optional[ADEdge]:
        """Get the edge of ``edge_type`` between two nodes, if any."""
        if not self._graph.has_edge(source_id, target_id, key=edge_type.value):
            return None
        return self._graph.edges[source_id, target_id, edge_type.value].get('edge_obj')

    def get_nodes_by_type(self, node_type: NodeType) -> Iterator[ADNode]:
        """Iterate over all nodes of a specific type."""
        for object_id in self._nodes_by_type[node_type]:
            node = self.get_node(object_id)
            if node:
                yield node

    def get_edges_by_type(self, edge_type: EdgeType) -> Iterator[ADEdge]:
        """Iterate over all edges of a specific type."""
        for source_id, target_id in self._edges_by_type[edge_type]:
            edge = self.get_edge(source_id, target_id, edge_type)
            if edge:
                yield edge

    def get_outgoing_edges(self, object_id: str) -> Iterator[ADEdge]:
        """Iterate over edges leaving a node."""
        if not self._graph.has_node(object_id):
            return
        for _, _, attrs in self._graph.out_edges(object_id, data=True):
            yield attrs['edge_obj']

    def get_incoming_edges(self, object_id: str) -> Iterator[ADEdge]:
        """Iterate over edges pointing at a node."""
        if not self._graph.has_node(object_id):
            return
        for _, _, attrs in self._graph.in_edges(object_id, data=True):
            yield attrs['edge_obj']

    def unknown_nodes(self) -> list[str]:
        """Edge endpoints that are not collected objects."""
        return [
            object_id for object_id, attrs in self._graph.nodes(data=True)
            if 'node_obj' not in attrs
        ]

    @property
    def node_count(self) -> int:
        """Collected objects plus unknown edge endpoints."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        """Relationships, counting each edge type between a pair once."""
        return self._graph.number_of_edges()

    def to_dict(self) -> dict:
        """Export graph summary as a dictionary."""
        return {
            "nodes": self.node_count,
            "edges": self.edge_count,
            "nodes_by_type": {
                node_type.value: len(ids) for node_type, ids in self._nodes_by_type.items()
            },
            "edges_by_type": {
                edge_type.value: len(pairs) for edge_type, pairs in self._edges_by_type.items()
            },
            "unknown_nodes": len(self.unknown_nodes()),
        }


def _edge(source_id: str, target_id: str, edge_type: EdgeType, **properties) -> ADEdge:
    return ADEdge(source_id=source_id, target_id=target_id, edge_type=edge_type, properties=properties)


def _edges_of(node: ADNode) -> Iterator[ADEdge]:
    """Flatten the edge fields of one node into ADEdges."""
    target = node.object_id

    for ace in node.aces:
        yield _edge(
            ace.principal_sid, target, EdgeType.from_string(ace.right_name),
            is_inherited=ace.is_inherited, right_name=ace.right_name,
        )

    if node.contained_by and node.contained_by.object_identifier:
        yield _edge(node.contained_by.object_identifier, target, EdgeType.CONTAINS)

    if isinstance(node, Group):
        for member in node.members:
            yield _edge(member.object_identifier, target, EdgeType.MEMBER_OF)

    if isinstance(node, (User, Computer)):
        for delegate in node.allowed_to_delegate:
            yield _edge(target, delegate.object_identifier, EdgeType.ALLOWED_TO_DELEGATE)
        for previous in node.has_sid_history:
            yield _edge(target, previous.object_identifier, EdgeType.HAS_SID_HISTORY)

    if isinstance(node, User):
        for spn in node.spn_targets:
            yield _edge(target, spn.computer_sid, EdgeType.SQL_ADMIN, port=spn.port)

    if isinstance(node, Computer):
        for principal in node.allowed_to_act:
            yield _edge(principal.object_identifier, target, EdgeType.ALLOWED_TO_ACT)

    if isinstance(node, (Domain, OU)):
        for link in node.links:
            yield _edge(link.guid, target, EdgeType.GP_LINK, is_enforced=link.is_enforced)

    if isinstance(node, Domain):
        for trust in node.trusts:
            yield _edge(
                trust.target_domain_sid, target, EdgeType.TRUSTED_BY,
                trust_type=trust.trust_type, trust_direction=trust.trust_direction,
            )

    if isinstance(node, EnterpriseCA):
        for template in node.enabled_cert_templates:
            yield _edge(template.object_identifier, target, EdgeType.PUBLISHED_TO)

    if isinstance(node, IssuancePolicy) and node.group_link:
        yield _edge(target, node.group_link.object_identifier, EdgeType.OID_GROUP_LINK)
