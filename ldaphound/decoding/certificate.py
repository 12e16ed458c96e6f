"""
X.509 certificate decoding for certificate-services objects.

cACertificate values are DER certificates. The thumbprint is the upper-case
SHA-1 of the DER bytes and is computed even when the certificate itself does
not parse.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from cryptography import x509

logger = logging.getLogger(__name__)


@dataclass
class CertificateInfo:
    """What the graph needs to know about a CA certificate."""
    thumbprint: str
    has_basic_constraints: bool = False
    basic_constraint_path_length: int = 0
    subject: Optional[str] = None


def thumbprint(der: bytes) -> str:
    """SHA-1 thumbprint of a DER certificate, upper-case hex."""
    return hashlib.sha1(der).hexdigest().upper()


def decode_certificate(der: bytes) -> CertificateInfo:
    """Decode a DER certificate.

    Args:
        der: Raw certificate bytes from cACertificate

    Returns:
        CertificateInfo; basic constraints are left at their defaults when
        the certificate cannot be parsed or has no such extension
    """
    info = CertificateInfo(thumbprint=thumbprint(der))
    try:
        certificate = x509.load_der_x509_certificate(der)
    except ValueError as e:
        logger.debug("Cannot parse certificate %s: %s", info.thumbprint, e)
        return info

    info.subject = certificate.subject.rfc4514_string()
    try:
        constraints = certificate.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return info

    info.has_basic_constraints = True
    if constraints.path_length is not None:
        info.basic_constraint_path_length = constraints.path_length
    return info
