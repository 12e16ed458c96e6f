"""
ldapHound Analysis Module
=========================

Turns decoded collections into a closed graph.

Components:
- resolver.py: Ordered resolution passes over the collections
- wellknown.py: Built-in principals and localized fixed group names
"""

from .resolver import RelationshipResolver
