"""
Decoded collections handed from the parser to the resolver and on to export.

One ordered list per object type plus the trust list. Order is decode order,
which keeps every pass and every export deterministic for a given input.
"""

from dataclasses import dataclass, field
from typing import Iterator

from .schemas import (
    ADNode, NodeType, Trust,
    User, Group, Computer, OU, Domain, GPO, Container, ForeignSecurityPrincipal,
    RootCA, EnterpriseCA, AIACA, NTAuthStore, CertTemplate, IssuancePolicy,
)


@dataclass
class ADResults:
    """Per-type node collections of one collection run."""
    users: list[User] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list)
    computers: list[Computer] = field(default_factory=list)
    ous: list[OU] = field(default_factory=list)
    domains: list[Domain] = field(default_factory=list)
    gpos: list[GPO] = field(default_factory=list)
    containers: list[Container] = field(default_factory=list)
    fsps: list[ForeignSecurityPrincipal] = field(default_factory=list)
    root_cas: list[RootCA] = field(default_factory=list)
    enterprise_cas: list[EnterpriseCA] = field(default_factory=list)
    aia_cas: list[AIACA] = field(default_factory=list)
    ntauth_stores: list[NTAuthStore] = field(default_factory=list)
    cert_templates: list[CertTemplate] = field(default_factory=list)
    issuance_policies: list[IssuancePolicy] = field(default_factory=list)
    trusts: list[Trust] = field(default_factory=list)

    _COLLECTIONS = {
        NodeType.USER: "users",
        NodeType.GROUP: "groups",
        NodeType.COMPUTER: "computers",
        NodeType.OU: "ous",
        NodeType.DOMAIN: "domains",
        NodeType.GPO: "gpos",
        NodeType.CONTAINER: "containers",
        NodeType.FOREIGN_SECURITY_PRINCIPAL: "fsps",
        NodeType.ROOT_CA: "root_cas",
        NodeType.ENTERPRISE_CA: "enterprise_cas",
        NodeType.AIA_CA: "aia_cas",
        NodeType.NT_AUTH_STORE: "ntauth_stores",
        NodeType.CERT_TEMPLATE: "cert_templates",
        NodeType.ISSUANCE_POLICY: "issuance_policies",
    }

    def collection_for(self, node_type: NodeType) -> list:
        """Return the list holding nodes of ``node_type``."""
        return getattr(self, self._COLLECTIONS[node_type])

    def add(self, node: ADNode) -> None:
        """Append a node to the collection of its type."""
        self.collection_for(node.node_type).append(node)

    def all_nodes(self) -> Iterator[ADNode]:
        """Iterate every node, collection by collection."""
        for attribute in self._COLLECTIONS.values():
            yield from getattr(self, attribute)

    def collections(self) -> dict[str, list]:
        """Ordered collections by type name, plus trusts (the export boundary)."""
        exported = {node_type.value: getattr(self, attribute)
                    for node_type, attribute in self._COLLECTIONS.items()}
        exported[NodeType.TRUST.value] = self.trusts
        return exported

    def counts(self) -> dict[str, int]:
        """Number of objects per type name."""
        return {name: len(items) for name, items in self.collections().items()}

    def __len__(self) -> int:
        return sum(len(getattr(self, attribute)) for attribute in self._COLLECTIONS.values())
