# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Key Material

Key shapes (KeyType) and RSA / elliptic-curve key pair generation.
Every call to :func:`generate_private_key` returns fresh material; callers
that need a stable key must cache it (see ``CertificateRequest``).
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pydantic import BaseModel, ConfigDict, model_validator

from zonecert.constants import (
    CURVE_SHORT_NAMES,
    KEY_ALGORITHM_ECDSA,
    KEY_ALGORITHM_RSA,
    RSA_KEY_SIZES,
    RSA_PUBLIC_EXPONENT,
    SUPPORTED_CURVES,
)
from zonecert.exceptions import ConfigurationError, KeyGenerationError

logger = logging.getLogger(__name__)

PrivateKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]

_CURVES: dict[str, type[ec.EllipticCurve]] = {
    "secp224r1": ec.SECP224R1,
    "prime256v1": ec.SECP256R1,
    "secp384r1": ec.SECP384R1,
    "secp521r1": ec.SECP521R1,
}

# cryptography reports curves by their SEC names
_CURVE_NAMES_BY_SEC_NAME = {cls.name: name for name, cls in _CURVES.items()}


class KeyType(BaseModel):
    """Algorithm plus size-or-curve identifying a key's shape.

    Two KeyTypes are equal iff algorithm and size/curve match exactly.

    Example:
        >>> KeyType.rsa(2048) == KeyType(algorithm="rsa", key_size=2048)
        True
        >>> str(KeyType.ecdsa("prime256v1"))
        'ecdsa-prime256v1'
    """

    model_config = ConfigDict(frozen=True)

    algorithm: str
    key_size: Optional[int] = None
    curve: Optional[str] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "KeyType":
        if self.algorithm == KEY_ALGORITHM_RSA:
            if self.key_size is None or self.key_size <= 0 or self.curve is not None:
                raise ConfigurationError(
                    f"RSA key type needs a positive key size, got size={self.key_size!r} curve={self.curve!r}"
                )
        elif self.algorithm == KEY_ALGORITHM_ECDSA:
            if self.curve not in SUPPORTED_CURVES or self.key_size is not None:
                raise ConfigurationError(
                    f"Unsupported curve {self.curve!r}; expected one of {', '.join(SUPPORTED_CURVES)}"
                )
        else:
            raise ConfigurationError(f"Unsupported key algorithm: {self.algorithm!r}")
        return self

    @classmethod
    def rsa(cls, key_size: int) -> "KeyType":
        return cls(algorithm=KEY_ALGORITHM_RSA, key_size=key_size)

    @classmethod
    def ecdsa(cls, curve: str) -> "KeyType":
        return cls(algorithm=KEY_ALGORITHM_ECDSA, curve=curve)

    @property
    def option(self) -> Union[int, str]:
        """The size (RSA) or curve name (EC)."""
        return self.key_size if self.algorithm == KEY_ALGORITHM_RSA else self.curve

    def __str__(self) -> str:
        return f"{self.algorithm}-{self.option}"


def all_key_types() -> tuple[KeyType, ...]:
    """Every RSA size and every supported curve."""
    return rsa_key_types() + ecdsa_key_types()


def rsa_key_types() -> tuple[KeyType, ...]:
    return tuple(KeyType.rsa(size) for size in RSA_KEY_SIZES)


def ecdsa_key_types() -> tuple[KeyType, ...]:
    return tuple(KeyType.ecdsa(curve) for curve in SUPPORTED_CURVES)


def translate_curve(short_name: str) -> str:
    """Translate a platform curve short name (``P256``) to its standard name.

    Raises:
        ConfigurationError: If the short name is not in the curve table.
    """
    try:
        return CURVE_SHORT_NAMES[str(short_name).strip().lower()]
    except KeyError:
        raise ConfigurationError(f"Unknown elliptic curve short name: {short_name!r}")


def generate_private_key(key_type: KeyType) -> PrivateKey:
    """Generate a fresh key pair of the given shape.

    Args:
        key_type: RSA size or EC curve to generate.

    Returns:
        A ``cryptography`` private key; the public half is ``key.public_key()``.

    Raises:
        ConfigurationError: If the algorithm or curve is not supported.
        KeyGenerationError: If the backend fails to produce the key.
    """
    if key_type.algorithm == KEY_ALGORITHM_RSA:
        try:
            key = rsa.generate_private_key(
                public_exponent=RSA_PUBLIC_EXPONENT,
                key_size=key_type.key_size,
            )
        except (ValueError, UnsupportedAlgorithm) as e:
            raise KeyGenerationError(f"RSA key generation failed for size {key_type.key_size}: {e}") from e
    elif key_type.algorithm == KEY_ALGORITHM_ECDSA:
        curve_cls = _CURVES.get(key_type.curve)
        if curve_cls is None:
            raise ConfigurationError(f"Unsupported curve: {key_type.curve!r}")
        try:
            key = ec.generate_private_key(curve_cls())
        except (ValueError, UnsupportedAlgorithm) as e:
            raise KeyGenerationError(f"EC key generation failed for curve {key_type.curve}: {e}") from e
    else:
        raise ConfigurationError(f"Unsupported key algorithm: {key_type.algorithm!r}")

    logger.info("Generated %s private key", key_type)
    return key


def key_type_of(key) -> KeyType:
    """Return the KeyType describing an existing private or public key."""
    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return KeyType.rsa(key.key_size)
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        curve = _CURVE_NAMES_BY_SEC_NAME.get(key.curve.name)
        if curve is None:
            raise ConfigurationError(f"Unsupported curve: {key.curve.name}")
        return KeyType.ecdsa(curve)
    raise ConfigurationError(f"Unsupported key type: {type(key).__name__}")


def load_private_key(data: Union[str, bytes], password: Optional[bytes] = None) -> PrivateKey:
    """Load a PEM-encoded RSA or EC private key."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        key = serialization.load_pem_private_key(data, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"Invalid private key: {e}") from e
    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise ConfigurationError(f"Unsupported private key type: {type(key).__name__}")
    return key


def private_key_to_pem(private_key: PrivateKey) -> str:
    """Serialize a private key as unencrypted PKCS#8 PEM text."""
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
