# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
CSR Builder

Assembles and signs PKCS#10 certificate signing requests.

The ``subjectAltName`` extension request is attached twice: once under the
PKCS#9 ``extensionRequest`` attribute and once under the Microsoft
``msExtReq`` attribute, with identical contents. Some certificate
authorities only honor one of the two.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from asn1crypto import csr as asn1csr
from asn1crypto import keys as asn1keys
from asn1crypto import x509 as asn1x509
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.x509.oid import NameOID

from zonecert.constants import OID_MS_EXTENSION_REQUEST
from zonecert.exceptions import ConfigurationError
from zonecert.keys import PrivateKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Subject:
    """Subject attributes of a request, in distinguished-name order.

    ``None`` means absent. Empty strings are kept here so policy checks can
    tell them apart, but they are never written into a CSR.
    """

    common_name: Optional[str] = None
    organization: Optional[str] = None
    organizational_units: tuple[str, ...] = field(default_factory=tuple)
    country: Optional[str] = None
    province: Optional[str] = None
    locality: Optional[str] = None

    def name_attributes(self) -> list[x509.NameAttribute]:
        """Present attributes in the fixed order CN, O, OU, C, ST, L."""
        pairs = [
            (NameOID.COMMON_NAME, self.common_name),
            (NameOID.ORGANIZATION_NAME, self.organization),
            *((NameOID.ORGANIZATIONAL_UNIT_NAME, ou) for ou in self.organizational_units),
            (NameOID.COUNTRY_NAME, self.country),
            (NameOID.STATE_OR_PROVINCE_NAME, self.province),
            (NameOID.LOCALITY_NAME, self.locality),
        ]
        attributes = []
        for oid, value in pairs:
            if not value:
                continue
            try:
                attributes.append(x509.NameAttribute(oid, value))
            except ValueError as e:
                raise ConfigurationError(f"Invalid subject attribute {oid.dotted_string}={value!r}: {e}") from e
        return attributes

    def to_name(self) -> x509.Name:
        return x509.Name(self.name_attributes())


def _san_extension_values(san_dns: Sequence[str]) -> asn1csr.SetOfExtensions:
    try:
        general_names = [asn1x509.GeneralName({"dns_name": name}) for name in san_dns]
    except ValueError as e:
        raise ConfigurationError(f"Invalid SAN DNS name: {e}") from e

    san_extension = asn1x509.Extension(
        {"extn_id": "subject_alt_name", "critical": False, "extn_value": general_names}
    )
    return asn1csr.SetOfExtensions([[san_extension]])


def extension_request_attributes(san_dns: Sequence[str]) -> list[asn1csr.CRIAttribute]:
    """Build the SAN extension request under both attribute identifiers."""
    if not san_dns:
        return []

    values = _san_extension_values(san_dns)
    encoded = values.dump()
    return [
        asn1csr.CRIAttribute({"type": "extension_request", "values": values}),
        asn1csr.CRIAttribute(
            {
                "type": OID_MS_EXTENSION_REQUEST,
                "values": asn1csr.SetOfExtensions.load(encoded),
            }
        ),
    ]


def _sign(
    private_key: PrivateKey,
    data: bytes,
    hash_algorithm: hashes.HashAlgorithm,
) -> tuple[bytes, str]:
    """Sign *data*; return the signature and its asn1crypto algorithm name."""
    if isinstance(private_key, rsa.RSAPrivateKey):
        signature = private_key.sign(data, padding.PKCS1v15(), hash_algorithm)
        return signature, f"{hash_algorithm.name}_rsa"
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        signature = private_key.sign(data, ec.ECDSA(hash_algorithm))
        return signature, f"{hash_algorithm.name}_ecdsa"
    raise ConfigurationError(f"Unsupported private key type: {type(private_key).__name__}")


def build_csr(
    subject: Subject,
    private_key: PrivateKey,
    san_dns: Optional[Iterable[str]] = None,
    hash_algorithm: Optional[hashes.HashAlgorithm] = None,
) -> str:
    """Build and sign a PKCS#10 request.

    Args:
        subject: Subject attributes; a common name is required.
        private_key: Key pair; the public half goes into the request and the
            private half signs it.
        san_dns: DNS names for the ``subjectAltName`` extension request.
        hash_algorithm: Signature digest, SHA-256 when omitted.

    Returns:
        The request as PEM text.

    Raises:
        ConfigurationError: If the common name is missing or an attribute is
            rejected by the name encoder.
    """
    if not subject.common_name:
        raise ConfigurationError("A common name is required to build a CSR")

    hash_algorithm = hash_algorithm or hashes.SHA256()
    san_dns = [name for name in (san_dns or []) if name]

    public_key_der = private_key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    request_info = asn1csr.CertificationRequestInfo()
    request_info["version"] = "v1"
    request_info["subject"] = asn1x509.Name.load(subject.to_name().public_bytes())
    request_info["subject_pk_info"] = asn1keys.PublicKeyInfo.load(public_key_der)
    request_info["attributes"] = extension_request_attributes(san_dns)

    signature, algorithm = _sign(private_key, request_info.dump(), hash_algorithm)

    request = asn1csr.CertificationRequest(
        {
            "certification_request_info": request_info,
            "signature_algorithm": asn1csr.SignedDigestAlgorithm({"algorithm": algorithm}),
            "signature": signature,
        }
    )

    csr = x509.load_der_x509_csr(request.dump())
    logger.info(
        "Built CSR for %s (%d SAN DNS names, %s)",
        subject.common_name,
        len(san_dns),
        algorithm,
    )
    return csr.public_bytes(serialization.Encoding.PEM).decode("ascii")
