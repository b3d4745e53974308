# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Zone Configuration

Default field values of a zone, extracted from the same policy document the
compiler consumes. Used to pre-fill requests, never to validate them.
"""

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from zonecert.constants import DEFAULT_CURVE, DEFAULT_RSA_KEY_SIZE, KEY_ALGORITHM_RSA
from zonecert.exceptions import ConfigurationError
from zonecert.keys import KeyType, translate_curve
from zonecert.policy.compiler import key_algorithm_tag
from zonecert.policy.document import KeyPairPolicy, LockableValue, ZonePolicyDocument


class CertField(BaseModel):
    """A zone default value and whether the platform locks it.

    A locked value overrides whatever the request carries.
    """

    model_config = ConfigDict(frozen=True)

    value: Optional[Union[str, tuple[str, ...]]] = None
    locked: bool = False


class ZoneConfiguration(BaseModel):
    """Per-field defaults plus the zone's default key type."""

    model_config = ConfigDict(frozen=True)

    country: CertField = Field(default_factory=CertField)
    province: CertField = Field(default_factory=CertField)
    locality: CertField = Field(default_factory=CertField)
    organization: CertField = Field(default_factory=CertField)
    organizational_unit: CertField = Field(default_factory=CertField)
    key_type: Optional[KeyType] = None
    key_type_locked: bool = False


def _scalar_field(field: LockableValue) -> CertField:
    values = field.all_values()
    return CertField(value=values[0] if values else None, locked=field.locked)


def _multi_field(field: LockableValue) -> CertField:
    values = field.all_values()
    return CertField(value=tuple(values) if values else None, locked=field.locked)


def default_key_type(key_pair: KeyPairPolicy) -> Optional[KeyType]:
    """The single key type a zone proposes, or None if it names no algorithm."""
    if key_pair.key_algorithm.value is None:
        return None
    algorithm = key_algorithm_tag(key_pair.key_algorithm.value)
    if algorithm == KEY_ALGORITHM_RSA:
        size = key_pair.key_size.value
        try:
            return KeyType.rsa(int(size) if size is not None else DEFAULT_RSA_KEY_SIZE)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid key size in zone configuration: {size!r}")
    curve = key_pair.elliptic_curve.value
    return KeyType.ecdsa(translate_curve(curve) if curve is not None else DEFAULT_CURVE)


def extract_zone_configuration(
    document: Union[ZonePolicyDocument, Mapping[str, Any]],
) -> ZoneConfiguration:
    """Extract value/locked pairs and the default key type from a document."""
    body = ZonePolicyDocument.coerce(document).policy
    subject = body.subject
    return ZoneConfiguration(
        country=_scalar_field(subject.country),
        province=_scalar_field(subject.province),
        locality=_scalar_field(subject.locality),
        organization=_scalar_field(subject.organization),
        organizational_unit=_multi_field(subject.organizational_unit),
        key_type=default_key_type(body.key_pair),
        key_type_locked=body.key_pair.key_algorithm.locked,
    )
