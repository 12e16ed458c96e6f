"""
SID Decoding
============

Converts the directory-native binary SID layout to its string form.

Layout:
    Byte 0: Revision
    Byte 1: Number of sub-authorities
    Bytes 2-7: Identifier authority (big-endian)
    Remaining: Sub-authorities (little-endian 32-bit)

Design Decisions:
-----------------
1. Malformed input decodes to "" instead of raising; the caller leaves the
   field at its default and keeps going
2. Strings of 16 characters or less are well-known relative SIDs seen through
   a foreign security principal or an ACE (S-1-5-11, S-1-5-32-544); they are
   qualified with the upper-cased domain name so they stay unique per domain
"""

import logging
import re
import struct
from typing import Optional

logger = logging.getLogger(__name__)

SHORT_SID_LENGTH = 16
NULL_AUTHORITY = "S-0-0"

# Domain part of a full domain-relative SID (drops the RID)
DOMAIN_SID_RE = re.compile(r"^S-\d-\d-\d+-\d+-\d+-\d+")
# Any SID embedded in a string, e.g. a foreign principal DN
EMBEDDED_SID_RE = re.compile(r"S-\d+-\d+(?:-\d+)+")


def decode_sid(raw: bytes, domain: str = "") -> str:
    """Decode a binary SID.

    Args:
        raw: Binary SID data (trailing bytes are ignored)
        domain: Domain name used to qualify short well-known SIDs

    Returns:
        String SID (e.g. "S-1-5-21-..."), or "" on malformed input
    """
    if not raw:
        return ""

    try:
        revision = raw[0]
        sub_auth_count = raw[1]
        if len(raw) < 8 + 4 * sub_auth_count:
            raise ValueError(f"truncated SID ({len(raw)} bytes, {sub_auth_count} sub-authorities)")
        id_auth = int.from_bytes(raw[2:8], "big")
        sub_auths = struct.unpack_from(f"<{sub_auth_count}I", raw, 8)
    except (IndexError, ValueError, struct.error) as e:
        logger.debug("Cannot decode SID %r: %s", bytes(raw[:32]), e)
        return ""

    sid = f"S-{revision}-{id_auth}"
    for sub_auth in sub_auths:
        sid += f"-{sub_auth}"

    if len(sid) <= SHORT_SID_LENGTH and domain:
        sid = f"{domain.upper()}-{sid}"

    if NULL_AUTHORITY in sid:
        logger.error("Decoded SID %s carries the null authority, the record may be corrupted", sid)

    return sid


def domain_sid_of(sid: str) -> Optional[str]:
    """Return the domain part of a domain-relative SID, or None."""
    match = DOMAIN_SID_RE.match(sid)
    return match.group(0) if match else None


def find_embedded_sid(value: str) -> Optional[str]:
    """Return the first SID pattern embedded in ``value``, or None."""
    match = EMBEDDED_SID_RE.search(value)
    return match.group(0) if match else None
