"""
Cross-Reference Index
=====================

Four maps that let the resolver turn DNs and host names into identifiers
and identifiers into type names.

Design Decisions:
-----------------
1. CrossReferenceIndex is the mutable form, owned by the decode phase and
   filled monotonically (entries are never removed)
2. ``freeze()`` hands out an IndexView backed by read-only mapping proxies;
   the resolver only ever sees the view
3. The unresolved sentinel "SID" (and the empty identifier) is never entered
4. DNs are stored upper-cased; lookups upper-case their argument

Lifecycle:
    index = CrossReferenceIndex()      # empty at run start
    index.register_node(node)          # during decoding
    view = index.freeze()              # read-only from here on
"""

from types import MappingProxyType
from typing import Mapping, Optional

from .schemas import ADNode, UNRESOLVED_IDENTIFIER


def _is_indexable(identifier: str) -> bool:
    return bool(identifier) and identifier != UNRESOLVED_IDENTIFIER


class CrossReferenceIndex:
    """Mutable index populated by the type decoders."""

    def __init__(self):
        self.dn_to_identifier: dict[str, str] = {}
        self.identifier_to_type: dict[str, str] = {}
        self.hostname_to_identifier: dict[str, str] = {}
        self.hostname_to_address: dict[str, str] = {}
        self._frozen = False

    def _check_writable(self) -> None:
        if self._frozen:
            raise RuntimeError("cross-reference index is frozen")

    def register(self, dn: str, identifier: str, type_name: str) -> bool:
        """Record DN -> identifier and identifier -> type.

        Returns:
            False when the identifier is the unresolved sentinel and nothing was stored
        """
        self._check_writable()
        if not _is_indexable(identifier):
            return False
        self.dn_to_identifier[dn.upper()] = identifier
        self.identifier_to_type[identifier] = type_name
        return True

    def register_node(self, node: ADNode) -> bool:
        """Record a decoded node under its DN and type."""
        return self.register(node.distinguished_name, node.object_id, node.node_type.value)

    def register_host(self, hostname: str, identifier: str) -> None:
        """Record a computer host name and seed its address for later resolution."""
        self._check_writable()
        if not hostname or not _is_indexable(identifier):
            return
        hostname = hostname.upper()
        self.hostname_to_identifier[hostname] = identifier
        self.hostname_to_address.setdefault(hostname, "")

    def set_address(self, hostname: str, address: str) -> None:
        """Store the resolved address of a known host name."""
        self._check_writable()
        hostname = hostname.upper()
        if hostname in self.hostname_to_address:
            self.hostname_to_address[hostname] = address

    def freeze(self) -> "IndexView":
        """End the decode phase and return the read-only view."""
        self._frozen = True
        return IndexView(self)

    def __len__(self) -> int:
        return len(self.dn_to_identifier)


class IndexView:
    """Read-only view of a frozen index, used by the relationship resolver.

    Every lookup has default-on-miss semantics; nothing here raises for an
    unknown key.
    """

    __slots__ = ("dn_to_identifier", "identifier_to_type",
                 "hostname_to_identifier", "hostname_to_address", "_identifier_to_dn")

    def __init__(self, index: CrossReferenceIndex):
        self.dn_to_identifier: Mapping[str, str] = MappingProxyType(index.dn_to_identifier)
        self.identifier_to_type: Mapping[str, str] = MappingProxyType(index.identifier_to_type)
        self.hostname_to_identifier: Mapping[str, str] = MappingProxyType(index.hostname_to_identifier)
        self.hostname_to_address: Mapping[str, str] = MappingProxyType(index.hostname_to_address)
        self._identifier_to_dn = MappingProxyType(
            {identifier: dn for dn, identifier in index.dn_to_identifier.items()}
        )

    def identifier_for_dn(self, dn: str) -> Optional[str]:
        return self.dn_to_identifier.get(dn.upper())

    def dn_for_identifier(self, identifier: str) -> Optional[str]:
        return self._identifier_to_dn.get(identifier)

    def type_of(self, identifier: str, default: str) -> str:
        return self.identifier_to_type.get(identifier, default)

    def identifier_for_host(self, hostname: str) -> Optional[str]:
        return self.hostname_to_identifier.get(hostname.upper())

    def identifiers_of_type(self, type_name: str) -> list[str]:
        """All identifiers of a type, in decode order."""
        return [identifier for identifier, kind in self.identifier_to_type.items() if kind == type_name]

    def identifier_for_dn_fragment(self, fragment: str) -> Optional[str]:
        """Identifier of the first DN containing ``fragment`` (case-insensitive)."""
        fragment = fragment.upper()
        for dn, identifier in self.dn_to_identifier.items():
            if fragment in dn:
                return identifier
        return None

    def __len__(self) -> int:
        return len(self.dn_to_identifier)
