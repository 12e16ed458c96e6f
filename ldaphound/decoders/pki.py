"""
Certificate-services decoders.

Root, AIA and enterprise CAs and the NTAuth store carry DER certificates in
cACertificate; they are fingerprinted and their basic constraints read.
Certificate templates and issuance policies are plain attribute decodes.
Enterprise CA template names and issuance-policy group links are left as
names/DNs and rewritten by the resolver.
"""

import logging

from .common import apply_common, apply_security, object_guid, qualified_name, register
from ..decoding import flags
from ..decoding.certificate import decode_certificate, thumbprint
from ..decoding.dn import relative_name
from ..decoding.timestamps import binary_span, span_to_string
from ..ingestion.records import LdapRecord
from ..model.index import CrossReferenceIndex
from ..model.schemas import (
    AIACA, CertTemplate, EnterpriseCA, IssuancePolicy, Member, NodeType, NTAuthStore, RootCA,
)

logger = logging.getLogger(__name__)

AUTHENTICATION_OIDS = {
    "1.3.6.1.5.5.7.3.2",       # Client Authentication
    "1.3.6.1.5.2.3.4",         # PKINIT Client Authentication
    "1.3.6.1.4.1.311.20.2.2",  # Smartcard Logon
    "2.5.29.37.0",             # Any Purpose
}


def _apply_ca_certificate(node, record: LdapRecord) -> None:
    """Fingerprint the first cACertificate value."""
    der = record.first_binary("cACertificate")
    if not der:
        return
    info = decode_certificate(der)
    node.properties.update({
        "certthumbprint": info.thumbprint,
        "certname": info.thumbprint,
        "certchain": [info.thumbprint],
        "hasbasicconstraints": info.has_basic_constraints,
        "basicconstraintpathlength": info.basic_constraint_path_length,
    })


def _named(node, record: LdapRecord, domain: str, domain_sid: str) -> None:
    apply_common(node, record, domain, domain_sid)
    node.object_id = object_guid(record)
    node.name = qualified_name(record.first("name") or relative_name(record.dn), domain)


def decode_root_ca(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> RootCA:
    ca = RootCA()
    _named(ca, record, domain, domain_sid)
    _apply_ca_certificate(ca, record)
    apply_security(ca, record, domain)
    register(ca, index)
    return ca


def decode_aia_ca(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> AIACA:
    ca = AIACA()
    _named(ca, record, domain, domain_sid)
    ca.properties["hascrosscertificatepair"] = record.has("crossCertificatePair")
    _apply_ca_certificate(ca, record)
    apply_security(ca, record, domain)
    register(ca, index)
    return ca


def decode_ntauth_store(record: LdapRecord, domain: str, index: CrossReferenceIndex,
                        domain_sid: str) -> NTAuthStore:
    """Decode the NTAuth store; every certificate it holds is fingerprinted."""
    store = NTAuthStore()
    _named(store, record, domain, domain_sid)
    store.properties["certthumbprints"] = [thumbprint(der) for der in record.binary_values("cACertificate")]
    apply_security(store, record, domain)
    register(store, index)
    return store


def decode_enterprise_ca(record: LdapRecord, domain: str, index: CrossReferenceIndex,
                         domain_sid: str) -> EnterpriseCA:
    """Decode an enrollment service.

    Published template names stay names (typed CertTemplate) until the
    resolver swaps them for template identifiers.
    """
    ca = EnterpriseCA()
    _named(ca, record, domain, domain_sid)
    ca.hosting_computer = (record.first("dNSHostName") or "").upper()
    ca.properties.update({
        "caname": record.first("name") or relative_name(record.dn),
        "dnshostname": record.first("dNSHostName"),
        "flags": record.first("flags"),
    })
    ca.enabled_cert_templates = [
        Member(name, NodeType.CERT_TEMPLATE.value) for name in record.values("certificateTemplates")
    ]
    _apply_ca_certificate(ca, record)
    apply_security(ca, record, domain)
    register(ca, index)
    return ca


def _effective_ekus(schema_version: int, ekus: list[str], application_policy: list[str]) -> list[str]:
    if schema_version == 1 and ekus:
        return list(ekus)
    return list(application_policy)


def decode_cert_template(record: LdapRecord, domain: str, index: CrossReferenceIndex,
                         domain_sid: str) -> CertTemplate:
    """Decode a certificate template.

    Flag fields are rendered as comma-separated flag names; validity and
    renewal periods are decoded from their 8-byte span values.
    """
    template = CertTemplate()
    _named(template, record, domain, domain_sid)

    name_flags = _flag_list(record.first("msPKI-Certificate-Name-Flag"), flags.PKI_CERTIFICATE_NAME_FLAGS)
    enrollment_flags = _flag_list(record.first("msPKI-Enrollment-Flag"), flags.PKI_ENROLLMENT_FLAGS)
    schema_version = flags.parse_int(record.first("msPKI-Template-Schema-Version"))
    ekus = record.values("pKIExtendedKeyUsage")
    application_policy = record.values("msPKI-Certificate-Application-Policy")
    effective = _effective_ekus(schema_version, ekus, application_policy)

    template.properties.update({
        "displayname": record.first("displayName"),
        "certificatenameflag": ", ".join(name_flags),
        "enrolleesuppliessubject": "ENROLLEE_SUPPLIES_SUBJECT" in name_flags,
        "subjectaltrequireupn": "SUBJECT_ALT_REQUIRE_UPN" in name_flags,
        "enrollmentflag": ", ".join(enrollment_flags),
        "requiresmanagerapproval": "PEND_ALL_REQUESTS" in enrollment_flags,
        "nosecurityextension": "NO_SECURITY_EXTENSION" in enrollment_flags,
        "authorizedsignatures": flags.parse_int(record.first("msPKI-RA-Signature")),
        "applicationpolicies": record.values("msPKI-RA-Application-Policies"),
        "certificateapplicationpolicy": application_policy,
        "issuancepolicies": record.values("msPKI-RA-Policies"),
        "oid": record.first("msPKI-Cert-Template-OID"),
        "ekus": ekus,
        "schemaversion": schema_version,
        "effectiveekus": effective,
        "authenticationenabled": not effective or bool(AUTHENTICATION_OIDS & set(effective)),
        "validityperiod": span_to_string(binary_span(record.first_binary("pKIExpirationPeriod"))),
        "renewalperiod": span_to_string(binary_span(record.first_binary("pKIOverlapPeriod"))),
        "enabled": False,
    })

    apply_security(template, record, domain)
    register(template, index)
    return template


def _flag_list(value, table: dict[int, str]) -> list[str]:
    return flags.flag_names(flags.parse_int(value), table)


def decode_issuance_policy(record: LdapRecord, domain: str, index: CrossReferenceIndex,
                           domain_sid: str) -> IssuancePolicy:
    policy = IssuancePolicy()
    apply_common(policy, record, domain, domain_sid)
    policy.object_id = object_guid(record)
    display_name = record.first("displayName") or record.first("name") or relative_name(record.dn)
    policy.name = qualified_name(display_name, domain)
    policy.properties.update({
        "displayname": display_name,
        "certtemplateoid": record.first("msPKI-Cert-Template-OID"),
    })
    link = record.first("msDS-OIDToGroupLink")
    if link:
        policy.group_link = Member(link.upper(), NodeType.GROUP.value)
    apply_security(policy, record, domain)
    register(policy, index)
    return policy
