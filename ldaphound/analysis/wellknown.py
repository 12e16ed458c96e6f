"""
Well-known principals.

Built-in groups and users that exist in every domain but are not stored as
directory records, plus the localized names of the fixed domain groups used
to rebuild SIDs of members that live in a trusted domain.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BuiltinPrincipal:
    """Catalogue entry; the identifier is ``{DOMAIN}-{sid}``."""
    sid: str
    name: str
    highvalue: bool = False


ENTERPRISE_DOMAIN_CONTROLLERS = BuiltinPrincipal("S-1-5-9", "ENTERPRISE DOMAIN CONTROLLERS")
EVERYONE = BuiltinPrincipal("S-1-1-0", "EVERYONE")
AUTHENTICATED_USERS = BuiltinPrincipal("S-1-5-11", "AUTHENTICATED USERS")

BUILTIN_GROUPS = (
    ENTERPRISE_DOMAIN_CONTROLLERS,
    BuiltinPrincipal("S-1-5-32-548", "ACCOUNT OPERATORS", highvalue=True),
    BuiltinPrincipal("S-1-5-32-560", "WINDOWS AUTHORIZATION ACCESS GROUP"),
    EVERYONE,
    AUTHENTICATED_USERS,
    BuiltinPrincipal("S-1-5-32-544", "ADMINISTRATORS", highvalue=True),
    BuiltinPrincipal("S-1-5-32-554", "PRE-WINDOWS 2000 COMPATIBLE ACCESS"),
    BuiltinPrincipal("S-1-5-4", "INTERACTIVE"),
    BuiltinPrincipal("S-1-5-32-550", "PRINT OPERATORS", highvalue=True),
    BuiltinPrincipal("S-1-5-32-561", "TERMINAL SERVER LICENSE SERVERS"),
    BuiltinPrincipal("S-1-5-32-557", "INCOMING FOREST TRUST BUILDERS"),
    BuiltinPrincipal("S-1-5-15", "THIS ORGANIZATION"),
)

NT_AUTHORITY = BuiltinPrincipal("S-1-5-20", "NT AUTHORITY")

# Groups every authenticated principal is a member of, by RID
DOMAIN_COMPUTERS_RID = "-515"
DOMAIN_USERS_RID = "-513"

# English and French names of the fixed domain groups
GROUP_NAME_RIDS = (
    ("DOMAIN ADMINS", "-512"),
    ("ADMINISTRATEURS DU DOMAINE", "-512"),
    ("DOMAIN USERS", "-513"),
    ("UTILISATEURS DU DOMAINE", "-513"),
    ("DOMAIN GUESTS", "-514"),
    ("INVITES DE DOMAINE", "-514"),
    ("DOMAIN COMPUTERS", "-515"),
    ("ORDINATEURS DE DOMAINE", "-515"),
    ("DOMAIN CONTROLLERS", "-516"),
    ("CONTRÔLEURS DE DOMAINE", "-516"),
    ("CERT PUBLISHERS", "-517"),
    ("EDITEURS DE CERTIFICATS", "-517"),
    ("SCHEMA ADMINS", "-518"),
    ("ADMINISTRATEURS DU SCHEMA", "-518"),
    ("ENTERPRISE ADMINS", "-519"),
    ("ADMINISTRATEURS DE L'ENTREPRISE", "-519"),
)


def builtin_identifier(domain: str, principal: BuiltinPrincipal) -> str:
    return f"{domain.upper()}-{principal.sid}"


def builtin_name(domain: str, principal: BuiltinPrincipal) -> str:
    return f"{principal.name}@{domain.upper()}"


def rid_for_group_name(value: str) -> Optional[str]:
    """RID suffix ("-512") of the first fixed group name found in ``value``."""
    value = value.upper()
    for name, rid in GROUP_NAME_RIDS:
        if name in value:
            return rid
    return None
