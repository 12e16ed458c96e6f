"""Tests for the object classifier."""

import pytest

from ldaphound.ingestion.classifier import classify, is_ignored_container
from ldaphound.model.schemas import NodeType

PKS = "CN=Public Key Services,CN=Services,CN=Configuration,DC=CORP,DC=LOCAL"


@pytest.mark.parametrize("classes, dn, expected", [
    (["top", "person", "organizationalPerson", "user"], "CN=alice,CN=Users,DC=CORP,DC=LOCAL", NodeType.USER),
    (["top", "person", "organizationalPerson", "user", "computer"], "CN=SRV01,DC=CORP,DC=LOCAL", NodeType.COMPUTER),
    (["top", "person", "user", "computer", "msDS-GroupManagedServiceAccount"], "CN=gmsa,DC=CORP,DC=LOCAL", NodeType.USER),
    (["top", "group"], "CN=Domain Admins,CN=Users,DC=CORP,DC=LOCAL", NodeType.GROUP),
    (["top", "organizationalUnit"], "OU=Servers,DC=CORP,DC=LOCAL", NodeType.OU),
    (["top", "domain", "domainDNS"], "DC=CORP,DC=LOCAL", NodeType.DOMAIN),
    (["top", "container", "groupPolicyContainer"], "CN={31B2F340},CN=Policies,DC=CORP,DC=LOCAL", NodeType.GPO),
    (["top", "foreignSecurityPrincipal"], "CN=S-1-5-11,CN=ForeignSecurityPrincipals,DC=CORP,DC=LOCAL",
     NodeType.FOREIGN_SECURITY_PRINCIPAL),
    (["top", "container"], "CN=Users,DC=CORP,DC=LOCAL", NodeType.CONTAINER),
    (["top", "leaf", "trustedDomain"], "CN=child.corp.local,CN=System,DC=CORP,DC=LOCAL", NodeType.TRUST),
    (["top", "certificationAuthority"], f"CN=CORP-CA,CN=Certification Authorities,{PKS}", NodeType.ROOT_CA),
    (["top", "pKIEnrollmentService"], f"CN=CORP-CA,CN=Enrollment Services,{PKS}", NodeType.ENTERPRISE_CA),
    (["top", "pKICertificateTemplate"], f"CN=User,CN=Certificate Templates,{PKS}", NodeType.CERT_TEMPLATE),
    (["top", "certificationAuthority"], f"CN=CORP-CA,CN=AIA,{PKS}", NodeType.AIA_CA),
    (["top", "certificationAuthority"], f"CN=NTAuthCertificates,{PKS}", NodeType.NT_AUTH_STORE),
    (["top", "certificationAuthority"], "CN=Elsewhere,DC=CORP,DC=LOCAL", NodeType.UNKNOWN),
    (["top", "dnsNode"], "DC=@,DC=corp.local,CN=MicrosoftDNS,DC=CORP,DC=LOCAL", NodeType.UNKNOWN),
])
def test_classify(classes, dn, expected):
    assert classify(classes, dn) == expected


def test_issuance_policy_requires_flag_two():
    dn = f"CN=400.1234,CN=OID,{PKS}"
    assert classify(["top", "msPKI-Enterprise-Oid"], dn, "2") == NodeType.ISSUANCE_POLICY
    assert classify(["top", "msPKI-Enterprise-Oid"], dn, "1") == NodeType.UNKNOWN


def test_classes_are_case_insensitive():
    assert classify(["TOP", "GROUP"], "CN=x,DC=CORP,DC=LOCAL") == NodeType.GROUP


def test_ignored_containers():
    assert is_ignored_container("CN={6AC1786C-016F-11D2-945F-00C04FB984F9},CN=Policies,CN=System,DC=CORP,DC=LOCAL")
    assert is_ignored_container("CN=Operations,CN=DomainUpdates,CN=System,DC=CORP,DC=LOCAL")
    assert not is_ignored_container("CN=Users,DC=CORP,DC=LOCAL")
