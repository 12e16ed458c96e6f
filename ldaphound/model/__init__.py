"""
ldapHound Model Module
======================

Core data models of a collection run.

Key Components:
- schemas.py: Typed dataclasses for AD objects and their edge payloads
- index.py: Cross-reference index (DN, host name and type lookups)
- results.py: Per-type ordered collections
- graph_builder.py: NetworkX projection of the resolved collections
"""

from .schemas import (
    NodeType,
    EdgeType,
    ADNode,
    ADEdge,
    Ace,
    Member,
    Link,
    SPNTarget,
    GPOChange,
    Trust,
    User,
    Group,
    Computer,
    Domain,
    OU,
    Container,
    GPO,
    ForeignSecurityPrincipal,
    RootCA,
    AIACA,
    NTAuthStore,
    EnterpriseCA,
    CertTemplate,
    IssuancePolicy,
    UNRESOLVED_IDENTIFIER,
)
from .index import CrossReferenceIndex, IndexView
from .results import ADResults
from .graph_builder import ADGraph
