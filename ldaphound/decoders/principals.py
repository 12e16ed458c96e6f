"""
Security principal decoders: users, groups, computers, foreign principals.

Identifiers are SIDs. Users and computers also produce delegation edges that
hold host names until the resolver maps them to identifiers.
"""

import logging

from .common import (
    apply_common, apply_security, object_sid, qualified_name, register, timestamp,
)
from ..decoding import flags
from ..decoding.dn import relative_name
from ..decoding.security_descriptor import allowed_principals
from ..decoding.sid import decode_sid, domain_sid_of
from ..ingestion.records import LdapRecord
from ..model.index import CrossReferenceIndex
from ..model.schemas import (
    Ace, Computer, EdgeType, ForeignSecurityPrincipal, Group, Member, NodeType, SPNTarget, User,
)

logger = logging.getLogger(__name__)

# Domain-relative RIDs of privileged groups
HIGH_VALUE_RIDS = {"512", "516", "518", "519", "526", "527"}
# Builtin groups that are privileged in every domain
HIGH_VALUE_BUILTINS = {"S-1-5-32-544", "S-1-5-32-548", "S-1-5-32-549", "S-1-5-32-550", "S-1-5-32-551"}

DC_PRIMARY_GROUP = "516"
MSSQL_DEFAULT_PORT = 1433

LAPS_ATTRIBUTES = (
    "ms-Mcs-AdmPwd",
    "ms-Mcs-AdmPwdExpirationTime",
    "msLAPS-Password",
    "msLAPS-EncryptedPassword",
    "msLAPS-PasswordExpirationTime",
)


def _spn_host(spn: str) -> str:
    """Host part of an SPN ("cifs/srv01.corp.local:445" -> "SRV01.CORP.LOCAL")."""
    parts = spn.split("/")
    if len(parts) < 2:
        return ""
    return parts[1].split(":")[0].upper()


def _delegation_targets(record: LdapRecord) -> list[Member]:
    """msDS-AllowedToDelegateTo host names, de-duplicated in order."""
    targets = []
    seen = set()
    for spn in record.values("msDS-AllowedToDelegateTo"):
        host = _spn_host(spn)
        if host and host not in seen:
            seen.add(host)
            targets.append(Member(host, NodeType.COMPUTER.value))
    return targets


def _sid_history(record: LdapRecord, domain: str) -> list[Member]:
    history = []
    for raw in record.binary_values("sIDHistory"):
        sid = decode_sid(raw, domain)
        if sid:
            history.append(Member(sid, ""))
    return history


def _primary_group_sid(sid: str, record: LdapRecord) -> str:
    rid = record.first("primaryGroupID")
    domain_sid = domain_sid_of(sid)
    if not rid or not domain_sid:
        return ""
    return f"{domain_sid}-{rid}"


def _account_flags(node, record: LdapRecord) -> int:
    """userAccountControl flags shared by users and computers."""
    uac = flags.parse_int(record.first("userAccountControl")) & 0xFFFFFFFF
    node.properties.update({
        "enabled": not uac & flags.UAC_ACCOUNTDISABLE,
        "passwordnotreqd": bool(uac & flags.UAC_PASSWD_NOTREQD),
        "pwdneverexpires": bool(uac & flags.UAC_DONT_EXPIRE_PASSWORD),
        "unconstraineddelegation": bool(uac & flags.UAC_TRUSTED_FOR_DELEGATION),
        "trustedtoauth": bool(uac & flags.UAC_TRUSTED_TO_AUTH_FOR_DELEGATION),
        "lastlogon": timestamp(record, "lastLogon"),
        "lastlogontimestamp": timestamp(record, "lastLogonTimestamp"),
        "pwdlastset": timestamp(record, "pwdLastSet"),
        "serviceprincipalnames": record.values("servicePrincipalName"),
        "samaccountname": record.first("sAMAccountName"),
        "supportedencryptiontypes": flags.encryption_types(
            flags.parse_int(record.first("msDS-SupportedEncryptionTypes"))
        ),
    })
    return uac


def decode_user(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> User:
    """Decode a user or group managed service account."""
    user = User()
    apply_common(user, record, domain, domain_sid)
    user.object_id = object_sid(record, domain)
    user.name = qualified_name(record.first("sAMAccountName") or relative_name(record.dn), domain)

    uac = _account_flags(user, record)
    spns = record.values("servicePrincipalName")
    user.properties.update({
        "dontreqpreauth": bool(uac & flags.UAC_DONT_REQ_PREAUTH),
        "sensitive": bool(uac & flags.UAC_NOT_DELEGATED),
        "hasspn": bool(spns),
        "admincount": record.first("adminCount") == "1",
        "displayname": record.first("displayName"),
        "email": record.first("mail"),
        "title": record.first("title"),
        "homedirectory": record.first("homeDirectory"),
        "userpassword": record.first("userPassword"),
        "unixpassword": record.first("unixUserPassword"),
        "gmsa": record.has("msDS-GroupMSAMembership"),
    })

    user.allowed_to_delegate = _delegation_targets(record)
    user.properties["allowedtodelegate"] = [m.object_identifier for m in user.allowed_to_delegate]
    user.has_sid_history = _sid_history(record, domain)
    user.properties["sidhistory"] = [m.object_identifier for m in user.has_sid_history]
    user.primary_group_sid = _primary_group_sid(user.object_id, record)

    for spn in spns:
        if spn.upper().startswith("MSSQLSVC/"):
            host_port = spn.split("/", 1)[1]
            host, _, port = host_port.partition(":")
            user.spn_targets.append(SPNTarget(
                computer_sid=host.upper(),
                port=flags.parse_int(port, MSSQL_DEFAULT_PORT),
                service=EdgeType.SQL_ADMIN.value,
            ))

    apply_security(user, record, domain)
    for principal in allowed_principals(record.first_binary("msDS-GroupMSAMembership"), domain):
        user.aces.append(Ace(principal, EdgeType.READ_GMSA_PASSWORD.value, False))

    register(user, index)
    return user


def decode_group(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> Group:
    """Decode a group; members stay as upper-cased DNs until resolution."""
    group = Group()
    apply_common(group, record, domain, domain_sid)
    group.object_id = object_sid(record, domain)
    group.name = qualified_name(record.first("name") or record.first("sAMAccountName"), domain)
    group.members = [Member(dn.upper(), "") for dn in record.values("member")]

    rid = group.object_id.rsplit("-", 1)[-1]
    highvalue = (
        (domain_sid_of(group.object_id) is not None and rid in HIGH_VALUE_RIDS)
        or any(group.object_id.endswith(sid) for sid in HIGH_VALUE_BUILTINS)
    )
    group.properties.update({
        "samaccountname": record.first("sAMAccountName"),
        "admincount": record.first("adminCount") == "1",
        "highvalue": highvalue,
    })

    apply_security(group, record, domain)
    register(group, index)
    return group


def decode_computer(record: LdapRecord, domain: str, index: CrossReferenceIndex, domain_sid: str) -> Computer:
    """Decode a computer account and register its host name."""
    computer = Computer()
    apply_common(computer, record, domain, domain_sid)
    computer.object_id = object_sid(record, domain)

    computer.name = f"{record.first('name', '')}.{domain}".upper()
    if record.first("dNSHostName"):
        computer.name = record.first("dNSHostName").upper()

    uac = _account_flags(computer, record)
    computer.is_dc = bool(uac & flags.UAC_SERVER_TRUST_ACCOUNT) or record.first("primaryGroupID") == DC_PRIMARY_GROUP
    computer.properties.update({
        "operatingsystem": record.first("operatingSystem"),
        "haslaps": any(record.has(name) for name in LAPS_ATTRIBUTES),
        "isdc": computer.is_dc,
    })

    computer.allowed_to_delegate = _delegation_targets(record)
    computer.properties["allowedtodelegate"] = [m.object_identifier for m in computer.allowed_to_delegate]
    computer.allowed_to_act = [
        Member(sid, "")
        for sid in allowed_principals(record.first_binary("msDS-AllowedToActOnBehalfOfOtherIdentity"), domain)
    ]
    computer.has_sid_history = _sid_history(record, domain)
    computer.properties["sidhistory"] = [m.object_identifier for m in computer.has_sid_history]
    computer.primary_group_sid = _primary_group_sid(computer.object_id, record)

    apply_security(computer, record, domain)
    register(computer, index)
    index.register_host(computer.name, computer.object_id)
    return computer


def decode_foreign_principal(record: LdapRecord, domain: str, index: CrossReferenceIndex,
                             domain_sid: str) -> ForeignSecurityPrincipal:
    """Decode an entry of CN=ForeignSecurityPrincipals."""
    fsp = ForeignSecurityPrincipal()
    apply_common(fsp, record, domain, domain_sid)
    fsp.object_id = object_sid(record, domain)
    fsp.name = f"{domain}-{record.first('cn') or relative_name(record.dn)}".upper()
    register(fsp, index)
    return fsp
