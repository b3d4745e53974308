# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Shared constants for key shapes, CSR attribute identifiers and the
platform's curve naming.
"""

# Key algorithms
KEY_ALGORITHM_RSA = "rsa"
KEY_ALGORITHM_ECDSA = "ecdsa"

RSA_KEY_SIZES = (1024, 2048, 4096, 8192)
RSA_PUBLIC_EXPONENT = 65537
DEFAULT_RSA_KEY_SIZE = 2048

SUPPORTED_CURVES = ("secp224r1", "prime256v1", "secp384r1", "secp521r1")
DEFAULT_CURVE = "prime256v1"

# Platform curve short names -> standard curve names.
# Bump the version whenever the platform changes its naming.
CURVE_TABLE_VERSION = "1"
CURVE_SHORT_NAMES = {
    "p224": "secp224r1",
    "p256": "prime256v1",
    "p384": "secp384r1",
    "p521": "secp521r1",
}

# Platform key algorithm values -> key algorithm tags
PLATFORM_KEY_ALGORITHMS = {
    "rsa": KEY_ALGORITHM_RSA,
    "ec": KEY_ALGORITHM_ECDSA,
    "ecc": KEY_ALGORITHM_ECDSA,
    "ecdsa": KEY_ALGORITHM_ECDSA,
}

# CSR attribute identifiers carrying the requested extensions
OID_EXTENSION_REQUEST = "1.2.840.113549.1.9.14"
OID_MS_EXTENSION_REQUEST = "1.3.6.1.4.1.311.2.1.14"

# Signature digests selectable for CSR signing
DEFAULT_SIGNATURE_HASH = "sha256"
SIGNATURE_HASHES = ("sha256", "sha384", "sha512")

# Policy field names reported by the enforcer
FIELD_COMMON_NAME = "CN"
FIELD_ORGANIZATION = "O"
FIELD_ORGANIZATIONAL_UNIT = "OU"
FIELD_COUNTRY = "C"
FIELD_PROVINCE = "ST"
FIELD_LOCALITY = "L"
FIELD_SAN = "SAN"
FIELD_KEY_TYPE = "keyType"
