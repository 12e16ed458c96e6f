"""
Flag tables for directory bit fields.

userAccountControl, trust attributes, PKI template flags, Kerberos encryption
types and domain functional levels.
"""

# userAccountControl
UAC_ACCOUNTDISABLE = 0x00000002
UAC_PASSWD_NOTREQD = 0x00000020
UAC_SERVER_TRUST_ACCOUNT = 0x00002000
UAC_DONT_EXPIRE_PASSWORD = 0x00010000
UAC_TRUSTED_FOR_DELEGATION = 0x00080000
UAC_NOT_DELEGATED = 0x00100000
UAC_DONT_REQ_PREAUTH = 0x00400000
UAC_TRUSTED_TO_AUTH_FOR_DELEGATION = 0x01000000

# trustAttributes
TRUST_NON_TRANSITIVE = 0x00000001
TRUST_QUARANTINED_DOMAIN = 0x00000004
TRUST_FOREST_TRANSITIVE = 0x00000008
TRUST_CROSS_ORGANIZATION = 0x00000010
TRUST_WITHIN_FOREST = 0x00000020
TRUST_TREAT_AS_EXTERNAL = 0x00000040

TRUST_DIRECTIONS = {
    0: "Disabled",
    1: "Inbound",
    2: "Outbound",
    3: "Bidirectional",
}

FUNCTIONAL_LEVELS = {
    "0": "2000 Mixed/Native",
    "1": "2003 Interim",
    "2": "2003",
    "3": "2008",
    "4": "2008 R2",
    "5": "2012",
    "6": "2012 R2",
    "7": "2016",
}

ENCRYPTION_TYPES = {
    0x01: "DES-CBC-CRC",
    0x02: "DES-CBC-MD5",
    0x04: "RC4-HMAC-MD5",
    0x08: "AES128-CTS-HMAC-SHA1-96",
    0x10: "AES256-CTS-HMAC-SHA1-96",
}

PKI_CERTIFICATE_NAME_FLAGS = {
    0x00000001: "ENROLLEE_SUPPLIES_SUBJECT",
    0x00000002: "ADD_EMAIL",
    0x00000004: "ADD_OBJ_GUID",
    0x00000008: "OLD_CERT_SUPPLIES_SUBJECT_AND_ALT_NAME",
    0x00000100: "ADD_DIRECTORY_PATH",
    0x00010000: "ENROLLEE_SUPPLIES_SUBJECT_ALT_NAME",
    0x00400000: "SUBJECT_ALT_REQUIRE_DOMAIN_DNS",
    0x00800000: "SUBJECT_ALT_REQUIRE_SPN",
    0x01000000: "SUBJECT_ALT_REQUIRE_DIRECTORY_GUID",
    0x02000000: "SUBJECT_ALT_REQUIRE_UPN",
    0x04000000: "SUBJECT_ALT_REQUIRE_EMAIL",
    0x08000000: "SUBJECT_ALT_REQUIRE_DNS",
    0x10000000: "SUBJECT_REQUIRE_DNS_AS_CN",
    0x20000000: "SUBJECT_REQUIRE_EMAIL",
    0x40000000: "SUBJECT_REQUIRE_COMMON_NAME",
    0x80000000: "SUBJECT_REQUIRE_DIRECTORY_PATH",
}

PKI_ENROLLMENT_FLAGS = {
    0x00000001: "INCLUDE_SYMMETRIC_ALGORITHMS",
    0x00000002: "PEND_ALL_REQUESTS",
    0x00000004: "PUBLISH_TO_KRA_CONTAINER",
    0x00000008: "PUBLISH_TO_DS",
    0x00000010: "AUTO_ENROLLMENT_CHECK_USER_DS_CERTIFICATE",
    0x00000020: "AUTO_ENROLLMENT",
    0x00000040: "PREVIOUS_APPROVAL_VALIDATE_REENROLLMENT",
    0x00000100: "USER_INTERACTION_REQUIRED",
    0x00000400: "REMOVE_INVALID_CERTIFICATE_FROM_PERSONAL_STORE",
    0x00000800: "ALLOW_ENROLL_ON_BEHALF_OF",
    0x00001000: "ADD_OCSP_NOCHECK",
    0x00002000: "ENABLE_KEY_REUSE_ON_NT_TOKEN_KEYSET_STORAGE_FULL",
    0x00004000: "NOREVOCATIONINFOINISSUEDCERTS",
    0x00008000: "INCLUDE_BASIC_CONSTRAINTS_FOR_EE_CERTS",
    0x00010000: "ALLOW_PREVIOUS_APPROVAL_KEYBASEDRENEWAL_VALIDATE_REENROLLMENT",
    0x00020000: "ISSUANCE_POLICIES_FROM_REQUEST",
    0x00040000: "SKIP_AUTO_RENEWAL",
    0x00080000: "NO_SECURITY_EXTENSION",
}


def parse_int(value, default: int = 0) -> int:
    """Parse a directory integer string, returning ``default`` on garbage."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def flag_names(value: int, table: dict[int, str]) -> list[str]:
    """Return the names of every bit of ``value`` present in ``table``."""
    # Directory integers are signed 32-bit; fold negatives back to unsigned
    value &= 0xFFFFFFFF
    return [name for bit, name in table.items() if value & bit]


def encryption_types(value: int) -> list[str]:
    """Render msDS-SupportedEncryptionTypes."""
    if value == 0:
        return ["Not defined"]
    return flag_names(value, ENCRYPTION_TYPES)


def functional_level(value: str) -> str:
    """Render msDS-Behavior-Version."""
    return FUNCTIONAL_LEVELS.get(str(value).strip(), "Unknown")


def trust_properties(trust_attributes: int) -> tuple[str, bool, bool]:
    """Derive (trust type, is transitive, SID filtering) from trustAttributes."""
    if trust_attributes & TRUST_WITHIN_FOREST:
        return "ParentChild", True, bool(trust_attributes & TRUST_QUARANTINED_DOMAIN)
    if trust_attributes & TRUST_FOREST_TRANSITIVE:
        return "Forest", True, True
    if trust_attributes & (TRUST_TREAT_AS_EXTERNAL | TRUST_CROSS_ORGANIZATION):
        return "External", False, True
    return (
        "Unknown",
        not trust_attributes & TRUST_NON_TRANSITIVE,
        bool(trust_attributes & TRUST_QUARANTINED_DOMAIN),
    )
