# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Policy Compiler

Turns a raw zone policy document into a compiled :class:`Policy`: per-field
sets of anchored regular expressions plus the enumeration of allowed key
types. Compiled policies are immutable and safe to share between threads.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from zonecert.constants import (
    FIELD_COMMON_NAME,
    FIELD_COUNTRY,
    FIELD_LOCALITY,
    FIELD_ORGANIZATION,
    FIELD_ORGANIZATIONAL_UNIT,
    FIELD_PROVINCE,
    FIELD_SAN,
    KEY_ALGORITHM_RSA,
    PLATFORM_KEY_ALGORITHMS,
)
from zonecert.exceptions import ConfigurationError
from zonecert.keys import (
    KeyType,
    all_key_types,
    ecdsa_key_types,
    rsa_key_types,
    translate_curve,
)
from zonecert.policy.document import KeyPairPolicy, LockableValue, ZonePolicyDocument
from zonecert.policy.enforcer import PolicyCheckResult, check_request
from zonecert.policy.patterns import ALLOW_ANY, domain_pattern, literal

if TYPE_CHECKING:
    from zonecert.request import CertificateRequest

logger = logging.getLogger(__name__)


class Policy(BaseModel):
    """
    Compiled zone policy.

    For each subject field and SAN kind, a value passes if it fully matches
    any one pattern of that field's rule set. An empty rule set rejects every
    value.
    """

    model_config = ConfigDict(frozen=True)

    policy_id: str = Field(default="", description="Platform identifier of the zone")
    name: str = Field(default="", description="Zone display name")
    system_generated: bool = False
    creation_date: Optional[datetime] = None

    subject_cn_regexes: tuple[str, ...] = (ALLOW_ANY,)
    subject_o_regexes: tuple[str, ...] = (ALLOW_ANY,)
    subject_ou_regexes: tuple[str, ...] = (ALLOW_ANY,)
    subject_st_regexes: tuple[str, ...] = (ALLOW_ANY,)
    subject_l_regexes: tuple[str, ...] = (ALLOW_ANY,)
    subject_c_regexes: tuple[str, ...] = (ALLOW_ANY,)

    san_dns_regexes: tuple[str, ...] = (ALLOW_ANY,)
    # IP/email/URI/UPN are allow/deny only: allow-any placeholder or empty
    san_ip_regexes: tuple[str, ...] = ()
    san_email_regexes: tuple[str, ...] = ()
    san_uri_regexes: tuple[str, ...] = ()
    san_upn_regexes: tuple[str, ...] = ()

    key_types: tuple[KeyType, ...] = Field(default_factory=all_key_types)

    def rules_for(self, field: str) -> tuple[str, ...]:
        """Rule set for a field name (``CN``, ``O``, ``OU``, ``C``, ``ST``, ``L``, ``SAN``)."""
        rules = {
            FIELD_COMMON_NAME: self.subject_cn_regexes,
            FIELD_ORGANIZATION: self.subject_o_regexes,
            FIELD_ORGANIZATIONAL_UNIT: self.subject_ou_regexes,
            FIELD_COUNTRY: self.subject_c_regexes,
            FIELD_PROVINCE: self.subject_st_regexes,
            FIELD_LOCALITY: self.subject_l_regexes,
            FIELD_SAN: self.san_dns_regexes,
        }
        try:
            return rules[field]
        except KeyError:
            raise ConfigurationError(f"Unknown policy field: {field!r}")

    def allows_key_type(self, key_type: KeyType) -> bool:
        return key_type in self.key_types

    def check(self, request: "CertificateRequest", strict: bool = False) -> PolicyCheckResult:
        """Validate a request; see :func:`zonecert.policy.enforcer.check_request`."""
        return check_request(self, request, strict=strict)

    def enforce(self, request: "CertificateRequest", strict: bool = False) -> PolicyCheckResult:
        """Validate a request and raise if it violates the policy.

        Raises:
            ValidationError: Carrying the names of the offending fields.
        """
        result = self.check(request, strict=strict)
        for advisory in result.advisories:
            logger.warning("Policy %s advisory for %s: %s", self.name, advisory.field, advisory.message)
        result.raise_for_violations()
        return result


def compile_field(field: LockableValue) -> tuple[str, ...]:
    """Unlocked: allow any. Locked: one exact literal per value."""
    if not field.locked:
        return (ALLOW_ANY,)
    return tuple(literal(value) for value in field.all_values())


def compile_domains(
    domains: list[str],
    allow_wildcards: bool = False,
) -> tuple[str, ...]:
    """Allow any when no domains are whitelisted, else one pattern per domain."""
    if not domains:
        return (ALLOW_ANY,)
    return tuple(domain_pattern(domain, allow_wildcards) for domain in domains)


def _placeholder(allowed: bool) -> tuple[str, ...]:
    return (ALLOW_ANY,) if allowed else ()


def key_algorithm_tag(value: Any) -> str:
    """Translate the platform's algorithm value (``RSA``, ``EC``) to a key tag."""
    try:
        return PLATFORM_KEY_ALGORITHMS[str(value).strip().lower()]
    except KeyError:
        raise ConfigurationError(f"Unsupported key algorithm in policy: {value!r}")


def compile_key_types(key_pair: KeyPairPolicy) -> tuple[KeyType, ...]:
    """Enumerate the key types the zone accepts."""
    if not key_pair.key_algorithm.locked:
        return all_key_types()

    algorithm = key_algorithm_tag(key_pair.key_algorithm.value)
    if algorithm == KEY_ALGORITHM_RSA:
        if not key_pair.key_size.locked:
            return rsa_key_types()
        try:
            return (KeyType.rsa(int(key_pair.key_size.value)),)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid locked key size: {key_pair.key_size.value!r}")

    if not key_pair.elliptic_curve.locked:
        return ecdsa_key_types()
    return (KeyType.ecdsa(translate_curve(key_pair.elliptic_curve.value)),)


def compile_policy(
    document: Union[ZonePolicyDocument, Mapping[str, Any]],
    policy_id: str = "",
    name: str = "",
) -> Policy:
    """Compile a raw zone policy document.

    Args:
        document: The platform's policy document (model or raw mapping).
        policy_id: Platform identifier of the zone.
        name: Display name of the zone.

    Returns:
        The compiled policy.

    Raises:
        ConfigurationError: If the key algorithm or a locked curve is unknown.
    """
    body = ZonePolicyDocument.coerce(document).policy
    subject = body.subject

    if body.san_dns_allowed:
        san_dns = compile_domains(body.whitelisted_domains)
    else:
        san_dns = ()

    policy = Policy(
        policy_id=policy_id,
        name=name,
        subject_cn_regexes=compile_domains(body.whitelisted_domains, body.wildcards_allowed),
        subject_o_regexes=compile_field(subject.organization),
        subject_ou_regexes=compile_field(subject.organizational_unit),
        subject_st_regexes=compile_field(subject.province),
        subject_l_regexes=compile_field(subject.locality),
        subject_c_regexes=compile_field(subject.country),
        san_dns_regexes=san_dns,
        san_ip_regexes=_placeholder(body.san_ip_allowed),
        san_email_regexes=_placeholder(body.san_email_allowed),
        san_uri_regexes=_placeholder(body.san_uri_allowed),
        san_upn_regexes=_placeholder(body.san_upn_allowed),
        key_types=compile_key_types(body.key_pair),
    )
    logger.debug(
        "Compiled policy %r: %d CN rules, %d SAN DNS rules, %d key types",
        name,
        len(policy.subject_cn_regexes),
        len(policy.san_dns_regexes),
        len(policy.key_types),
    )
    return policy
