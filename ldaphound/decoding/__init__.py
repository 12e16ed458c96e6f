"""
ldapHound Decoding Module
=========================

Decoders for directory-native binary and encoded attribute values.

Key Components:
- sid.py: binary SID -> "S-1-5-21-..."
- guid.py: little-endian objectGUID -> canonical GUID string
- security_descriptor.py: nTSecurityDescriptor -> access-control edges
- certificate.py: DER CA certificates -> thumbprint and basic constraints
- timestamps.py, flags.py, gplink.py, dn.py: attribute-level helpers
"""

from .sid import decode_sid, domain_sid_of, find_embedded_sid
from .guid import decode_guid
from .security_descriptor import SecurityDescriptor, parse_security_descriptor, allowed_principals
from .certificate import CertificateInfo, decode_certificate
