"""
Object Classifier
=================

Maps a raw record's objectClass values and DN to one object type.

Rules are evaluated in priority order and the first match wins, because class
sets overlap (a computer is also a user, a gMSA carries computer classes).
Certificate-services objects share classes across roles and are told apart
purely by the well-known container they live under.

Priority:
     1. person + user, not computer, not group    -> User
     2. msDS-GroupManagedServiceAccount           -> User
     3. group                                     -> Group
     4. computer                                  -> Computer
     5. organizationalUnit                        -> OU
     6. domain                                    -> Domain
     7. groupPolicyContainer                      -> GPO
     8. top + foreignSecurityPrincipal            -> ForeignSecurityPrincipal
     9. top + container, not groupPolicyContainer -> Container
    10. trustedDomain                             -> Trust
    11. certificationAuthority under Certification Authorities -> RootCA
    12. pKIEnrollmentService under Enrollment Services        -> EnterpriseCA
    13. pKICertificateTemplate under Certificate Templates    -> CertTemplate
    14. certificationAuthority under AIA                      -> AIACA
    15. certificationAuthority under NTAuthCertificates       -> NTAuthStore
    16. msPKI-Enterprise-Oid under OID with flags 2           -> IssuancePolicy
    otherwise Unknown
"""

import re
from typing import Iterable

from .records import LdapRecord
from ..model.schemas import NodeType

PUBLIC_KEY_SERVICES = "CN=PUBLIC KEY SERVICES,CN=SERVICES,CN=CONFIGURATION"
ENTERPRISE_CA_LOCATION = f"CN=ENROLLMENT SERVICES,{PUBLIC_KEY_SERVICES}"
ROOT_CA_LOCATION = f"CN=CERTIFICATION AUTHORITIES,{PUBLIC_KEY_SERVICES}"
AIA_CA_LOCATION = f"CN=AIA,{PUBLIC_KEY_SERVICES}"
CERT_TEMPLATE_LOCATION = f"CN=CERTIFICATE TEMPLATES,{PUBLIC_KEY_SERVICES}"
NT_AUTH_STORE_LOCATION = f"CN=NTAUTHCERTIFICATES,{PUBLIC_KEY_SERVICES}"
ISSUANCE_POLICY_LOCATION = f"CN=OID,{PUBLIC_KEY_SERVICES}"

# Containers that only hold replication or upgrade bookkeeping
_GUID_NAMED_RE = re.compile(r"[0-9A-Z]+-[0-9A-Z]+-[0-9A-Z]+-[0-9A-Z]+")
_DOMAIN_UPDATES = "CN=DOMAINUPDATES,CN=SYSTEM,"


def classify(object_classes: Iterable[str], dn: str, flags: str = "") -> NodeType:
    """Classify a record.

    Args:
        object_classes: Values of objectClass
        dn: Distinguished name of the record
        flags: Value of the ``flags`` attribute (issuance policies only)

    Returns:
        NodeType of the record, NodeType.UNKNOWN when no rule matches
    """
    classes = {value.lower() for value in object_classes}
    location = dn.upper()

    if {"person", "user"} <= classes and not classes & {"computer", "group"}:
        return NodeType.USER
    if "msds-groupmanagedserviceaccount" in classes:
        return NodeType.USER
    if "group" in classes:
        return NodeType.GROUP
    if "computer" in classes:
        return NodeType.COMPUTER
    if "organizationalunit" in classes:
        return NodeType.OU
    if "domain" in classes:
        return NodeType.DOMAIN
    if "grouppolicycontainer" in classes:
        return NodeType.GPO
    if {"top", "foreignsecurityprincipal"} <= classes:
        return NodeType.FOREIGN_SECURITY_PRINCIPAL
    if {"top", "container"} <= classes:
        return NodeType.CONTAINER
    if "trusteddomain" in classes:
        return NodeType.TRUST
    if "certificationauthority" in classes and ROOT_CA_LOCATION in location:
        return NodeType.ROOT_CA
    if "pkienrollmentservice" in classes and ENTERPRISE_CA_LOCATION in location:
        return NodeType.ENTERPRISE_CA
    if "pkicertificatetemplate" in classes and CERT_TEMPLATE_LOCATION in location:
        return NodeType.CERT_TEMPLATE
    if "certificationauthority" in classes and AIA_CA_LOCATION in location:
        return NodeType.AIA_CA
    if "certificationauthority" in classes and NT_AUTH_STORE_LOCATION in location:
        return NodeType.NT_AUTH_STORE
    if "mspki-enterprise-oid" in classes and ISSUANCE_POLICY_LOCATION in location:
        if "2" in flags:
            return NodeType.ISSUANCE_POLICY
    return NodeType.UNKNOWN


def classify_record(record: LdapRecord) -> NodeType:
    """Classify a raw record."""
    return classify(record.object_classes, record.dn, record.first("flags", "") or "")


def is_ignored_container(dn: str) -> bool:
    """Whether a container only holds replication or upgrade bookkeeping."""
    location = dn.upper()
    return bool(_GUID_NAMED_RE.search(location)) or _DOMAIN_UPDATES in location
