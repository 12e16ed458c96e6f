"""
Security Descriptor Decoding
============================

Walks a self-relative nTSecurityDescriptor and turns it into access-control
edges for attack-path analysis.

Security Descriptor structure:
    Byte 0: Revision
    Byte 1: Sbz1
    Bytes 2-3: Control (little-endian)
    Bytes 4-7: Owner offset
    Bytes 8-11: Group offset
    Bytes 12-15: SACL offset
    Bytes 16-19: DACL offset

ACL structure:
    Byte 0: AclRevision, Byte 1: Sbz1, Bytes 2-3: AclSize,
    Bytes 4-5: AceCount, Bytes 6-7: Sbz2, then the ACEs

ACE header:
    Byte 0: AceType, Byte 1: AceFlags, Bytes 2-3: AceSize

Design Decisions:
-----------------
1. Only ACCESS_ALLOWED (0x00) and ACCESS_ALLOWED_OBJECT (0x05) ACEs produce
   edges; every other ACE type is skipped
2. The owner SID produces an "Owns" edge ahead of the DACL edges
3. Inherit-only ACEs, and inherited object ACEs scoped to another object
   class, do not apply to the object itself and are skipped
4. Rights that only make sense on one kind of object (AddMember on groups,
   GetChangesAll on domains) are only emitted for that kind
5. Creator Owner, Local System and Principal Self are never reported as
   principals
6. A malformed descriptor yields whatever was decoded before the fault
"""

import logging
import struct
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .guid import decode_guid
from .sid import decode_sid
from ..model.schemas import Ace, EdgeType, NodeType

logger = logging.getLogger(__name__)

# ACE types
ACCESS_ALLOWED_ACE_TYPE = 0x00
ACCESS_ALLOWED_OBJECT_ACE_TYPE = 0x05

# ACE flags
INHERIT_ONLY_ACE = 0x08
INHERITED_ACE = 0x10

# Object ACE flags
ACE_OBJECT_TYPE_PRESENT = 0x01
ACE_INHERITED_OBJECT_TYPE_PRESENT = 0x02

# Descriptor control bits
SE_DACL_PRESENT = 0x0004
SE_DACL_PROTECTED = 0x1000

# Standard and generic access rights
WRITE_DAC = 0x00040000
WRITE_OWNER = 0x00080000
GENERIC_ALL = 0x10000000
GENERIC_WRITE = 0x40000000
FULL_CONTROL = 0x000F01FF

# AD-specific rights
ADS_RIGHT_DS_SELF = 0x00000008            # Validated write (AddSelf)
ADS_RIGHT_DS_WRITE_PROP = 0x00000020      # Write property
ADS_RIGHT_DS_CONTROL_ACCESS = 0x00000100  # Extended right

IGNORED_PRINCIPALS = {
    "S-1-3-0",   # Creator Owner
    "S-1-5-18",  # Local System
    "S-1-5-10",  # Principal Self
}

MEMBER_PROPERTY = "bf9679c0-0de6-11d0-a285-00aa003049e2"
ALL_EXTENDED_RIGHTS_GUID = "00000000-0000-0000-0000-000000000000"

_USERS = {NodeType.USER, NodeType.COMPUTER}

# Property GUID -> (right, object types it applies to)
WRITE_PROPERTY_RIGHTS = {
    MEMBER_PROPERTY: (EdgeType.ADD_MEMBER, {NodeType.GROUP}),
    "5b47d60f-6090-40b2-9f37-2a4de88f3063": (EdgeType.ADD_KEY_CREDENTIAL_LINK, _USERS),
    "3f78c3e5-f79a-46bd-a0b8-9d18116ddc79": (EdgeType.ADD_ALLOWED_TO_ACT, {NodeType.COMPUTER}),
    "f3a64788-5306-11d1-a9c5-0000f80367c1": (EdgeType.WRITE_SPN, _USERS),
    "4c164200-20c0-11d0-a768-00aa006e0529": (EdgeType.WRITE_ACCOUNT_RESTRICTIONS, _USERS),
    "f30e3bbe-9ff0-11d1-b603-0000f80367c1": (EdgeType.WRITE_GP_LINK, {NodeType.OU, NodeType.DOMAIN}),
    "d15ef7d8-f226-46db-ae79-b34e560bd12c": (EdgeType.WRITE_PKI_ENROLLMENT_FLAG, {NodeType.CERT_TEMPLATE}),
    "ea1dddc4-60ff-416e-8cc0-17cee534bce7": (EdgeType.WRITE_PKI_NAME_FLAG, {NodeType.CERT_TEMPLATE}),
}

# Extended right GUID -> (right, object types it applies to)
EXTENDED_RIGHTS = {
    "00299570-246d-11d0-a768-00aa006e0529": (EdgeType.FORCE_CHANGE_PASSWORD, _USERS),
    "1131f6aa-9c07-11d1-f79f-00c04fc2dcd2": (EdgeType.GET_CHANGES, {NodeType.DOMAIN}),
    "1131f6ad-9c07-11d1-f79f-00c04fc2dcd2": (EdgeType.GET_CHANGES_ALL, {NodeType.DOMAIN}),
    "89e95b76-444d-4c62-991a-0facbeda640c": (EdgeType.GET_CHANGES_IN_FILTERED_SET, {NodeType.DOMAIN}),
    "0e10c968-78fb-11d2-90d4-00c04f79dc55": (EdgeType.ENROLL, {NodeType.CERT_TEMPLATE, NodeType.ENTERPRISE_CA}),
    "a05b8cc2-17bc-4802-a710-e7c15ab866a2": (EdgeType.AUTO_ENROLL, {NodeType.CERT_TEMPLATE}),
}

# schemaIDGUID of the object classes inherited object ACEs are scoped to
OBJECT_CLASS_GUIDS = {
    NodeType.USER: {"bf967aba-0de6-11d0-a285-00aa003049e2", "7b8b558a-93a5-4af7-adca-c017e67f1057"},
    NodeType.COMPUTER: {"bf967a86-0de6-11d0-a285-00aa003049e2"},
    NodeType.GROUP: {"bf967a9c-0de6-11d0-a285-00aa003049e2"},
    NodeType.DOMAIN: {"19195a5b-6da0-11d0-afd3-00c04fd930c9"},
    NodeType.OU: {"bf967aa5-0de6-11d0-a285-00aa003049e2"},
    NodeType.GPO: {"f30e3bc2-9ff0-11d1-b603-0000f80367c1"},
    NodeType.CONTAINER: {"bf967a8b-0de6-11d0-a285-00aa003049e2"},
    NodeType.CERT_TEMPLATE: {"e5209ca2-3bba-11d2-90cc-00c04fd91ab1"},
    NodeType.ENTERPRISE_CA: {"ee4aa692-3bba-11d2-90cc-00c04fd91ab1"},
    NodeType.ROOT_CA: {"3fdfee50-47f4-11d1-a9c3-0000f80367c1"},
    NodeType.AIA_CA: {"3fdfee50-47f4-11d1-a9c3-0000f80367c1"},
    NodeType.NT_AUTH_STORE: {"3fdfee50-47f4-11d1-a9c3-0000f80367c1"},
}


@dataclass
class RawAce:
    """An ACE as stored, before rights are derived."""
    ace_type: int
    ace_flags: int
    mask: int
    sid: bytes
    object_type: Optional[str] = None
    inherited_object_type: Optional[str] = None

    @property
    def is_inherited(self) -> bool:
        return bool(self.ace_flags & INHERITED_ACE)


@dataclass
class SecurityDescriptor:
    """Decoded descriptor: owner, access-control edges and the protected bit."""
    owner_sid: str = ""
    aces: list[Ace] = field(default_factory=list)
    is_acl_protected: bool = False


def _read_header(raw: bytes) -> tuple[int, int, int]:
    """Return (control, owner offset, DACL offset)."""
    if len(raw) < 20:
        raise ValueError(f"descriptor too short ({len(raw)} bytes)")
    _, _, control, owner_offset, _, _, dacl_offset = struct.unpack_from("<BBHIIII", raw, 0)
    return control, owner_offset, dacl_offset


def iter_dacl(raw: bytes) -> Iterator[RawAce]:
    """Yield the ACEs of the descriptor's DACL in stored order.

    Stops silently at the first ACE that does not fit in the buffer.
    """
    control, _, dacl_offset = _read_header(raw)
    if not control & SE_DACL_PRESENT or dacl_offset == 0 or dacl_offset + 8 > len(raw):
        return

    ace_count = struct.unpack_from("<H", raw, dacl_offset + 4)[0]
    offset = dacl_offset + 8
    for _ in range(ace_count):
        if offset + 4 > len(raw):
            logger.debug("DACL truncated at offset %d", offset)
            return

        ace_type, ace_flags, ace_size = struct.unpack_from("<BBH", raw, offset)
        if ace_size < 8 or offset + ace_size > len(raw):
            logger.debug("Invalid ACE size %d at offset %d", ace_size, offset)
            return

        ace_data = raw[offset:offset + ace_size]
        offset += ace_size

        if ace_type == ACCESS_ALLOWED_ACE_TYPE:
            mask = struct.unpack_from("<I", ace_data, 4)[0]
            yield RawAce(ace_type, ace_flags, mask, ace_data[8:])

        elif ace_type == ACCESS_ALLOWED_OBJECT_ACE_TYPE:
            if len(ace_data) < 12:
                continue
            mask, flags = struct.unpack_from("<II", ace_data, 4)
            sid_offset = 12
            object_type = inherited_object_type = None
            if flags & ACE_OBJECT_TYPE_PRESENT:
                object_type = decode_guid(ace_data[sid_offset:sid_offset + 16]).lower()
                sid_offset += 16
            if flags & ACE_INHERITED_OBJECT_TYPE_PRESENT:
                inherited_object_type = decode_guid(ace_data[sid_offset:sid_offset + 16]).lower()
                sid_offset += 16
            yield RawAce(ace_type, ace_flags, mask, ace_data[sid_offset:],
                         object_type, inherited_object_type)


def _applies_to(ace: RawAce, node_type: NodeType) -> bool:
    """Whether the ACE takes effect on an object of ``node_type``."""
    if ace.ace_flags & INHERIT_ONLY_ACE:
        return False
    if ace.is_inherited and ace.inherited_object_type:
        return ace.inherited_object_type in OBJECT_CLASS_GUIDS.get(node_type, ())
    return True


def _rights_for(ace: RawAce, node_type: NodeType) -> list[EdgeType]:
    """Map an ACE's access mask and object type to right names."""
    mask = ace.mask
    object_type = ace.object_type

    if not object_type and (mask & GENERIC_ALL or mask & FULL_CONTROL == FULL_CONTROL):
        return [EdgeType.GENERIC_ALL]

    rights = []
    if mask & GENERIC_WRITE or (not object_type and mask & ADS_RIGHT_DS_WRITE_PROP):
        rights.append(EdgeType.GENERIC_WRITE)
    if mask & WRITE_DAC:
        rights.append(EdgeType.WRITE_DACL)
    if mask & WRITE_OWNER:
        rights.append(EdgeType.WRITE_OWNER)

    if object_type and mask & ADS_RIGHT_DS_WRITE_PROP:
        right, applies = WRITE_PROPERTY_RIGHTS.get(object_type, (None, ()))
        if right and node_type in applies:
            rights.append(right)

    if mask & ADS_RIGHT_DS_SELF and node_type == NodeType.GROUP:
        if object_type in (None, MEMBER_PROPERTY):
            rights.append(EdgeType.ADD_SELF)

    if mask & ADS_RIGHT_DS_CONTROL_ACCESS:
        if object_type in (None, ALL_EXTENDED_RIGHTS_GUID):
            rights.append(EdgeType.ALL_EXTENDED_RIGHTS)
        else:
            right, applies = EXTENDED_RIGHTS.get(object_type, (None, ()))
            if right and node_type in applies:
                rights.append(right)

    return rights


def parse_security_descriptor(raw: bytes, node_type: NodeType, domain: str = "") -> SecurityDescriptor:
    """Decode a binary security descriptor into access-control edges.

    Args:
        raw: Self-relative nTSecurityDescriptor bytes
        node_type: Type of the object the descriptor protects
        domain: Domain name used to qualify short well-known SIDs

    Returns:
        SecurityDescriptor with owner, ordered ACEs and the protected flag
    """
    result = SecurityDescriptor()
    if not raw:
        return result

    seen = set()

    def add(principal_sid: str, right: EdgeType, inherited: bool) -> None:
        key = (principal_sid, right.value, inherited)
        if key not in seen:
            seen.add(key)
            result.aces.append(Ace(principal_sid, right.value, inherited))

    try:
        control, owner_offset, _ = _read_header(raw)
        result.is_acl_protected = bool(control & SE_DACL_PROTECTED)

        if 0 < owner_offset < len(raw):
            owner = raw[owner_offset:]
            if decode_sid(owner) not in IGNORED_PRINCIPALS:
                result.owner_sid = decode_sid(owner, domain)
                if result.owner_sid:
                    add(result.owner_sid, EdgeType.OWNS, False)

        for ace in iter_dacl(raw):
            if decode_sid(ace.sid) in IGNORED_PRINCIPALS or not _applies_to(ace, node_type):
                continue
            principal = decode_sid(ace.sid, domain)
            if not principal:
                continue
            for right in _rights_for(ace, node_type):
                add(principal, right, ace.is_inherited)

    except (ValueError, IndexError, struct.error) as e:
        logger.debug("Security descriptor parse error: %s", e)

    return result


def allowed_principals(raw: bytes, domain: str = "") -> list[str]:
    """Return the principals granted access by a descriptor's DACL.

    Used for attributes that store a descriptor as an access list rather than
    as object security (msDS-AllowedToActOnBehalfOfOtherIdentity,
    msDS-GroupMSAMembership).
    """
    principals = []
    if not raw:
        return principals
    try:
        for ace in iter_dacl(raw):
            if decode_sid(ace.sid) in IGNORED_PRINCIPALS:
                continue
            principal = decode_sid(ace.sid, domain)
            if principal and principal not in principals:
                principals.append(principal)
    except (ValueError, IndexError, struct.error) as e:
        logger.debug("Access list parse error: %s", e)
    return principals
