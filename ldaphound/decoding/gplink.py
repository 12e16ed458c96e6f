"""
gPLink parsing.

Format: ``[LDAP://cn={GUID},cn=policies,cn=system,DC=...;status][...]``
where status 2 or 3 marks an enforced link. The embedded GUID is the GPO's
container name, not its objectGUID; the resolver maps it to the real
identifier once every GPO has been decoded.
"""

import re

from ..model.schemas import Link

_GUID_RE = re.compile(r"[a-zA-Z0-9-]{36}")
_STATUS_RE = re.compile(r";[0-4]")
_ENFORCED_STATUSES = {";2", ";3"}


def parse_gplink(gp_link: str) -> list[Link]:
    """Parse a gPLink attribute into Link entries, in attribute order."""
    if not gp_link:
        return []

    links = []
    for entry in gp_link.split("]"):
        guid = _GUID_RE.search(entry)
        if not guid:
            continue
        status = _STATUS_RE.search(entry)
        links.append(Link(
            guid=guid.group(0).upper(),
            is_enforced=bool(status and status.group(0) in _ENFORCED_STATUSES),
        ))
    return links
