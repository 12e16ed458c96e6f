import datetime
import hashlib

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from ldaphound.decoding.certificate import decode_certificate, thumbprint


def _make_certificate(path_length=None, with_constraints=True) -> bytes:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "CORP-DC01-CA")])
    now = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=365))
    )
    if with_constraints:
        builder = builder.add_extension(x509.BasicConstraints(ca=True, path_length=path_length), critical=True)
    return builder.sign(key, hashes.SHA256()).public_bytes(serialization.Encoding.DER)


def test_thumbprint_is_upper_case_sha1():
    der = _make_certificate()
    assert thumbprint(der) == hashlib.sha1(der).hexdigest().upper()
    assert len(thumbprint(der)) == 40


def test_basic_constraints_with_path_length():
    info = decode_certificate(_make_certificate(path_length=1))
    assert info.has_basic_constraints is True
    assert info.basic_constraint_path_length == 1
    assert info.subject == "CN=CORP-DC01-CA"


def test_basic_constraints_without_path_length():
    info = decode_certificate(_make_certificate(path_length=None))
    assert info.has_basic_constraints is True
    assert info.basic_constraint_path_length == 0


def test_certificate_without_basic_constraints():
    info = decode_certificate(_make_certificate(with_constraints=False))
    assert info.has_basic_constraints is False
    assert info.subject == "CN=CORP-DC01-CA"


def test_unparseable_certificate_still_has_thumbprint():
    garbage = b"\x30\x03\x02\x01\x00not a certificate"
    info = decode_certificate(garbage)
    assert info.thumbprint == hashlib.sha1(garbage).hexdigest().upper()
    assert info.has_basic_constraints is False
    assert info.subject is None
