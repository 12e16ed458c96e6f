"""
Raw directory records.

An LdapRecord is what the pipeline streams to storage and what the type
decoders consume: the DN plus text and binary attribute values. Attribute
names keep the server's spelling; lookups are case-insensitive.
"""

from dataclasses import dataclass, field
from typing import Optional

# Attributes whose values are always kept as bytes
BINARY_ATTRIBUTES = frozenset(name.lower() for name in (
    "objectSid",
    "objectGUID",
    "nTSecurityDescriptor",
    "securityIdentifier",
    "sIDHistory",
    "cACertificate",
    "crossCertificatePair",
    "userCertificate",
    "pKIExpirationPeriod",
    "pKIOverlapPeriod",
    "pKIKeyUsage",
    "pKICriticalExtensions",
    "msDS-AllowedToActOnBehalfOfOtherIdentity",
    "msDS-GroupMSAMembership",
    "msDS-ManagedPasswordId",
    "msDS-GenerationId",
    "mS-DS-CreatorSID",
    "schemaIDGUID",
    "attributeSecurityGUID",
    "logonHours",
    "dnsRecord",
    "auditingPolicy",
    "dSASignature",
    "replUpToDateVector",
    "repsFrom",
    "repsTo",
    "msDFSR-ContentSetGuid",
    "msDFSR-ReplicationGroupGuid",
    "thumbnailPhoto",
    "jpegPhoto",
))


@dataclass
class LdapRecord:
    """One directory entry.

    Attributes:
        dn: Distinguished name as returned by the server
        attributes: Text attribute values
        binary_attributes: Binary attribute values
    """
    dn: str
    attributes: dict[str, list[str]] = field(default_factory=dict)
    binary_attributes: dict[str, list[bytes]] = field(default_factory=dict)

    def __post_init__(self):
        self._text_keys = {name.lower(): name for name in self.attributes}
        self._binary_keys = {name.lower(): name for name in self.binary_attributes}

    def values(self, name: str) -> list[str]:
        """All text values of an attribute ([] when absent)."""
        key = self._text_keys.get(name.lower())
        return self.attributes[key] if key is not None else []

    def first(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First text value of an attribute."""
        values = self.values(name)
        return values[0] if values else default

    def binary_values(self, name: str) -> list[bytes]:
        """All binary values of an attribute ([] when absent)."""
        key = self._binary_keys.get(name.lower())
        return self.binary_attributes[key] if key is not None else []

    def first_binary(self, name: str) -> Optional[bytes]:
        """First binary value of an attribute."""
        values = self.binary_values(name)
        return values[0] if values else None

    def has(self, name: str) -> bool:
        """Whether the attribute is present as text or binary."""
        lowered = name.lower()
        return lowered in self._text_keys or lowered in self._binary_keys

    @property
    def object_classes(self) -> list[str]:
        return self.values("objectClass")

    @classmethod
    def from_ldap3(cls, entry: dict) -> "LdapRecord":
        """Build a record from an ldap3 search response item.

        Uses ``raw_attributes`` so binary values are never mangled by ldap3's
        formatters; known binary attributes and values that are not valid
        UTF-8 go to ``binary_attributes``.
        """
        attributes: dict[str, list[str]] = {}
        binary_attributes: dict[str, list[bytes]] = {}

        for name, raw_values in entry.get("raw_attributes", {}).items():
            if isinstance(raw_values, (bytes, str)):
                raw_values = [raw_values]
            values = [v if isinstance(v, bytes) else str(v).encode("utf-8") for v in raw_values]
            if not values:
                continue
            if name.lower() in BINARY_ATTRIBUTES:
                binary_attributes[name] = values
                continue
            try:
                attributes[name] = [v.decode("utf-8") for v in values]
            except UnicodeDecodeError:
                binary_attributes[name] = values

        return cls(dn=entry.get("dn", ""), attributes=attributes, binary_attributes=binary_attributes)
