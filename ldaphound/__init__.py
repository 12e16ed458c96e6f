"""
ldapHound - Active Directory LDAP Collector
===========================================

Collects every object of an Active Directory domain over LDAP, decodes the
binary attributes (SIDs, GUIDs, security descriptors, certificates) and
resolves all cross-references into a closed graph ready for export.

Architecture Overview:
----------------------
- decoding/: Binary and attribute-level decoders
- ingestion/: LDAP collection, record sinks, classification, two-pass parse
- decoders/: One decoder per object type
- model/: Typed node schemas, cross-reference index, collections, graph view
- analysis/: Relationship resolver and well-known principals
- pipeline.py: collect -> store -> decode -> resolve
- main.py: command line

Design Decisions:
-----------------
1. ldap3 is the protocol client for every authentication mode
2. All data models use Python dataclasses
3. Records are only interpreted after collection, always replayed from a sink
4. NetworkX is used for the graph projection of the resolved collections
"""

__version__ = "1.0.0"

from .config import LdapHoundConfig
from .errors import LdapHoundError
