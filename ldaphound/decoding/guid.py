"""GUID decoding for objectGUID and ACE object types."""

import uuid


def decode_guid(raw: bytes) -> str:
    """Format a 16-byte little-endian GUID in canonical upper-case form.

    The first three fields are stored byte-reversed, the last two in
    storage order.

    Args:
        raw: 16 bytes of GUID data

    Returns:
        GUID string (e.g. "003049E2-00AA-A285-11D0-0DE6BF967ABA"), or "" if
        the input is not 16 bytes long
    """
    if raw is None or len(raw) != 16:
        return ""
    return str(uuid.UUID(bytes_le=bytes(raw))).upper()
