"""
Distinguished name helpers.

DNs are compared upper-cased everywhere. Components are split on commas that
are not escaped with a backslash.
"""

import re

_COMPONENT_SPLIT_RE = re.compile(r"(?<!\\),")


def split_dn(dn: str) -> list[str]:
    """Split a DN into its components, keeping escaped commas."""
    if not dn:
        return []
    return [part.strip() for part in _COMPONENT_SPLIT_RE.split(dn)]


def parent_dn(dn: str) -> str:
    """Strip the leading component of a DN ("" for a single component)."""
    parts = split_dn(dn)
    return ",".join(parts[1:])


def rdn_value(component: str) -> str:
    """Return the value of a single RDN ("OU=Sales" -> "Sales")."""
    _, _, value = component.partition("=")
    return value


def relative_name(dn: str) -> str:
    """Return the value of the leading component of a DN."""
    parts = split_dn(dn)
    return rdn_value(parts[0]) if parts else ""


def domain_to_dc(domain: str) -> str:
    """Convert a DNS domain name to its naming context.

    Example: "corp.local" -> "DC=CORP,DC=LOCAL"
    """
    return ",".join(f"DC={part}" for part in domain.upper().split(".") if part)


def dc_to_domain(dn: str) -> str:
    """Collect the DC= components of a DN into a DNS domain name."""
    labels = [rdn_value(part) for part in split_dn(dn) if part.upper().startswith("DC=")]
    return ".".join(labels).upper()
