"""
Helpers shared by the type decoders.

Every decoder has the shape ``(record, domain, index, domain_sid) -> node``:
it fills a typed node from one raw record and registers the node in the
cross-reference index. Field-level decode failures leave the field at its
default and never abort the record.
"""

import logging
from typing import Optional

from ..decoding.guid import decode_guid
from ..decoding.security_descriptor import parse_security_descriptor
from ..decoding.sid import decode_sid
from ..decoding.timestamps import filetime_to_epoch, generalized_time_to_epoch
from ..ingestion.records import LdapRecord
from ..model.index import CrossReferenceIndex
from ..model.schemas import ADNode, UNRESOLVED_IDENTIFIER

logger = logging.getLogger(__name__)

# Placeholder carried by nodes decoded while no domain SID is known
UNKNOWN_DOMAIN_SID = "DOMAIN_SID"


def object_sid(record: LdapRecord, domain: str) -> str:
    """Decoded objectSid, or the unresolved sentinel."""
    raw = record.first_binary("objectSid")
    sid = decode_sid(raw, domain) if raw else ""
    return sid or UNRESOLVED_IDENTIFIER


def object_guid(record: LdapRecord) -> str:
    """Decoded objectGUID, or the unresolved sentinel."""
    raw = record.first_binary("objectGUID")
    guid = decode_guid(raw) if raw else ""
    return guid or UNRESOLVED_IDENTIFIER


def qualified_name(value: Optional[str], domain: str) -> str:
    """NAME@DOMAIN, upper-cased."""
    return f"{value or ''}@{domain}".upper()


def is_true(value: Optional[str]) -> bool:
    """Directory boolean ("TRUE"/"FALSE")."""
    return bool(value) and value.strip().upper() == "TRUE"


def apply_common(node: ADNode, record: LdapRecord, domain: str, domain_sid: str) -> None:
    """Fill the fields every node type shares."""
    node.distinguished_name = record.dn.upper()
    node.domain = domain.upper()
    node.properties["domainsid"] = domain_sid
    node.properties["description"] = record.first("description")
    node.properties["whencreated"] = generalized_time_to_epoch(record.first("whenCreated", ""))
    node.is_deleted = is_true(record.first("isDeleted"))


def apply_security(node: ADNode, record: LdapRecord, domain: str) -> None:
    """Decode nTSecurityDescriptor into ACEs and the protected flag."""
    raw = record.first_binary("nTSecurityDescriptor")
    if not raw:
        return
    descriptor = parse_security_descriptor(raw, node.node_type, domain)
    node.aces = descriptor.aces
    node.is_acl_protected = descriptor.is_acl_protected
    node.properties["isaclprotected"] = descriptor.is_acl_protected


def timestamp(record: LdapRecord, name: str) -> int:
    """FILETIME attribute as epoch seconds (0 when absent)."""
    return filetime_to_epoch(record.first(name, "0"))


def register(node: ADNode, index: CrossReferenceIndex) -> None:
    """Enter a decoded node in the index unless its identifier is unresolved."""
    if not index.register_node(node):
        logger.debug("%s %s has no identifier, not indexed", node.node_type.value, node.distinguished_name)
