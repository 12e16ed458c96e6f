"""
Structural decoders: domain, OU, container, GPO and trust records.

Everything except the domain is keyed by objectGUID. The domain decoder is
the one decoder that returns a second value, the domain SID, which the
parser threads into every other decoder.
"""

import logging

from .common import apply_common, apply_security, object_guid, object_sid, qualified_name, register
from ..decoding import flags
from ..decoding.dn import dc_to_domain, relative_name
from ..decoding.gplink import parse_gplink
from ..decoding.sid import decode_sid, domain_sid_of
from ..decoding.timestamps import span_to_string
from ..ingestion.records import LdapRecord
from ..model.index import CrossReferenceIndex
from ..model.schemas import GPO, OU, Container, Domain, Trust, UNRESOLVED_IDENTIFIER

logger = logging.getLogger(__name__)


def decode_domain(record: LdapRecord, domain: str, index: CrossReferenceIndex,
                  domain_sid: str) -> tuple[Domain, str]:
    """Decode the domain head.

    Returns:
        (Domain node, domain SID); the SID is ``domain_sid`` unchanged when
        the record has no usable objectSid
    """
    node = Domain()
    apply_common(node, record, domain, domain_sid)
    node.name = dc_to_domain(record.dn) or domain.upper()
    node.domain = node.name
    node.object_id = object_sid(record, domain)

    found_sid = domain_sid_of(node.object_id)
    if found_sid:
        domain_sid = found_sid
    else:
        logger.debug("Domain %s has no domain SID", record.dn)
    node.properties["domainsid"] = domain_sid

    quota = flags.parse_int(record.first("ms-DS-MachineAccountQuota"))
    node.properties.update({
        "functionallevel": flags.functional_level(record.first("msDS-Behavior-Version", "")),
        "highvalue": "TRUE" in (record.first("isCriticalSystemObject") or ""),
        "machineaccountquota": quota,
        "expirepasswordsonsmartcardonlyaccounts": record.has("msDS-ExpirePasswordsOnSmartCardOnlyAccounts"),
        "minpwdlength": flags.parse_int(record.first("minPwdLength")),
        "pwdproperties": flags.parse_int(record.first("pwdProperties")),
        "pwdhistorylength": flags.parse_int(record.first("pwdHistoryLength")),
        "lockoutthreshold": flags.parse_int(record.first("lockoutThreshold")),
        "minpwdage": span_to_string(flags.parse_int(record.first("minPwdAge"))),
        "maxpwdage": span_to_string(flags.parse_int(record.first("maxPwdAge"))),
        "lockoutduration": span_to_string(flags.parse_int(record.first("lockoutDuration"))),
        "lockoutobservationwindow": flags.parse_int(record.first("lockOutObservationWindow")),
        "collected": node.is_resolved,
    })
    if quota > 0:
        logger.info("MachineAccountQuota: %d", quota)

    node.links = parse_gplink(record.first("gPLink", ""))
    apply_security(node, record, domain)
    register(node, index)
    return node, domain_sid


def decode_ou(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> OU:
    ou = OU()
    apply_common(ou, record, domain, domain_sid)
    ou.object_id = object_guid(record)
    ou.name = qualified_name(record.first("name") or relative_name(record.dn), domain)
    ou.properties["blocksinheritance"] = flags.parse_int(record.first("gPOptions")) == 1
    ou.links = parse_gplink(record.first("gPLink", ""))
    apply_security(ou, record, domain)
    register(ou, index)
    return ou


def decode_container(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> Container:
    container = Container()
    apply_common(container, record, domain, domain_sid)
    container.object_id = object_guid(record)
    container.name = qualified_name(record.first("name") or relative_name(record.dn), domain)
    apply_security(container, record, domain)
    register(container, index)
    return container


def decode_gpo(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> GPO:
    gpo = GPO()
    apply_common(gpo, record, domain, domain_sid)
    gpo.object_id = object_guid(record)
    gpo.name = qualified_name(record.first("displayName") or relative_name(record.dn), domain)
    gpo.properties["gpcpath"] = (record.first("gPCFileSysPath") or "").upper()
    apply_security(gpo, record, domain)
    register(gpo, index)
    return gpo


def decode_trust(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> Trust:
    """Decode a trustedDomain record.

    Trusts are not graph nodes and never enter the index.
    """
    trust = Trust()
    trust.target_domain_name = (record.first("name") or relative_name(record.dn)).upper()
    trust.trust_direction = flags.TRUST_DIRECTIONS.get(
        flags.parse_int(record.first("trustDirection")), "Disabled"
    )

    attributes = flags.parse_int(record.first("trustAttributes")) & 0xFFFFFFFF
    trust.trust_attributes = attributes
    trust.trust_type, trust.is_transitive, trust.sid_filtering_enabled = flags.trust_properties(attributes)

    raw = record.first_binary("securityIdentifier")
    target_sid = decode_sid(raw, domain) if raw else ""
    trust.target_domain_sid = target_sid or UNRESOLVED_IDENTIFIER
    return trust
