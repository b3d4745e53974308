# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Issuance Configuration

Defaults applied when building requests: key shape, CSR signature digest
and how strictly locked-but-absent fields are treated during enforcement.
Can be loaded from and saved to YAML.
"""

from pathlib import Path
from typing import Literal

import yaml
from cryptography.hazmat.primitives import hashes
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from zonecert.constants import (
    DEFAULT_CURVE,
    DEFAULT_RSA_KEY_SIZE,
    DEFAULT_SIGNATURE_HASH,
    SIGNATURE_HASHES,
    SUPPORTED_CURVES,
)
from zonecert.exceptions import ConfigurationError

_HASHES = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


class IssuanceConfig(BaseModel):
    """Configuration for request construction and policy enforcement.

    Attributes:
        key_algorithm: Default key algorithm for new requests.
        key_length: Default RSA modulus size in bits.
        key_curve: Default EC curve name.
        signature_hash: Digest used to sign CSRs.
        strict_locked_fields: Treat locked fields missing from a request as
            violations instead of advisories.
    """

    key_algorithm: Literal["rsa", "ecdsa"] = Field(default="rsa", description="Default key algorithm")
    key_length: int = Field(default=DEFAULT_RSA_KEY_SIZE, gt=0, description="Default RSA key size")
    key_curve: str = Field(default=DEFAULT_CURVE, description="Default EC curve")
    signature_hash: str = Field(default=DEFAULT_SIGNATURE_HASH, description="CSR signature digest")
    strict_locked_fields: bool = Field(
        default=False, description="Report absent locked fields as violations"
    )

    @field_validator("key_curve")
    @classmethod
    def _check_curve(cls, value: str) -> str:
        if value not in SUPPORTED_CURVES:
            raise ValueError(f"unsupported curve {value!r}, expected one of {SUPPORTED_CURVES}")
        return value

    @field_validator("signature_hash")
    @classmethod
    def _check_hash(cls, value: str) -> str:
        value = value.lower().replace("-", "")
        if value not in SIGNATURE_HASHES:
            raise ValueError(f"unsupported signature hash {value!r}, expected one of {SIGNATURE_HASHES}")
        return value

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        """Return the ``cryptography`` digest instance for CSR signing."""
        try:
            return _HASHES[self.signature_hash]()
        except KeyError:
            raise ConfigurationError(f"Unsupported signature hash: {self.signature_hash}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "IssuanceConfig":
        """Load an IssuanceConfig from a YAML file.

        Raises:
            ConfigurationError: If the file is not valid YAML or holds invalid settings.
        """
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse issuance config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Issuance config {path} must be a mapping")
        try:
            return cls(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid issuance config {path}: {e}") from e

    def to_yaml(self, path: str | Path) -> None:
        """Save this IssuanceConfig to a YAML file."""
        path = Path(path)
        data = self.model_dump(mode="json")
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
