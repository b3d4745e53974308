"""Shared fixtures for the ZoneCert test suite."""

import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID


@pytest.fixture(scope="session")
def rsa_key():
    """A 2048-bit RSA key, generated once per session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_key():
    """A P-256 key, generated once per session."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def make_certificate():
    """Factory for one-day self-signed PEM certificates."""

    def _make(key, common_name: str) -> str:
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        now = datetime.datetime.now(datetime.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=1))
            .sign(key, hashes.SHA256())
        )
        return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")

    return _make


@pytest.fixture
def locked_document():
    """A platform policy document with locked subject fields and an EC key lock."""
    return {
        "Policy": {
            "WhitelistedDomains": ["example.com", "example.net"],
            "WildcardsAllowed": False,
            "SubjAltNameDnsAllowed": True,
            "SubjAltNameIpAllowed": False,
            "Subject": {
                "Organization": {"Locked": True, "Value": "Example Corp"},
                "OrganizationalUnit": {"Locked": True, "Values": ["Web", "Ops"]},
                "City": {"Locked": False, "Value": "Salt Lake City"},
                "State": {"Locked": True, "Value": "Utah"},
                "Country": {"Locked": True, "Value": "US"},
            },
            "KeyPair": {
                "KeyAlgorithm": {"Locked": True, "Value": "EC"},
                "KeySize": {"Locked": False, "Value": 2048},
                "EllipticCurve": {"Locked": True, "Value": "P256"},
            },
        }
    }


@pytest.fixture
def open_document():
    """A policy document that locks nothing."""
    return {"Policy": {}}
