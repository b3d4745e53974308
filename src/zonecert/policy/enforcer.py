# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Policy Enforcer

Validates a certificate request against a compiled policy before it is
submitted. Every field is checked and all violations are reported; the
check has no side effects.

A locked field the request leaves empty is reported as an advisory, since
the platform fills in the locked value itself. Pass ``strict=True`` to
report it as a violation instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

from zonecert.constants import (
    FIELD_COMMON_NAME,
    FIELD_COUNTRY,
    FIELD_KEY_TYPE,
    FIELD_LOCALITY,
    FIELD_ORGANIZATION,
    FIELD_ORGANIZATIONAL_UNIT,
    FIELD_PROVINCE,
    FIELD_SAN,
)
from zonecert.exceptions import ValidationError
from zonecert.policy.patterns import ALLOW_ANY, matches_any

if TYPE_CHECKING:
    from zonecert.policy.compiler import Policy
    from zonecert.request import CertificateRequest


class PolicyViolation(BaseModel):
    """A single field that failed (or was flagged by) a policy check."""

    field: str
    value: Optional[str] = None
    message: str


class PolicyCheckResult(BaseModel):
    """Result of checking a request against a policy."""

    policy_name: str = ""
    violations: list[PolicyViolation] = Field(default_factory=list)
    advisories: list[PolicyViolation] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def violating_fields(self) -> list[str]:
        """Names of the violating fields, first occurrence order."""
        return list(dict.fromkeys(v.field for v in self.violations))

    def raise_for_violations(self) -> None:
        """Raise :class:`ValidationError` if any violation was found."""
        if self.passed:
            return
        details = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        raise ValidationError(
            f"Request violates policy '{self.policy_name}': {details}",
            fields=self.violating_fields,
            violations=self.violations,
        )


def _subject_values(request: "CertificateRequest") -> list[tuple[str, tuple[str, ...]]]:
    def _one(value: Optional[str]) -> tuple[str, ...]:
        return () if value is None else (value,)

    return [
        (FIELD_COMMON_NAME, _one(request.common_name)),
        (FIELD_ORGANIZATION, _one(request.organization)),
        (FIELD_ORGANIZATIONAL_UNIT, request.organizational_units),
        (FIELD_COUNTRY, _one(request.country)),
        (FIELD_PROVINCE, _one(request.province)),
        (FIELD_LOCALITY, _one(request.locality)),
    ]


def check_request(
    policy: "Policy",
    request: "CertificateRequest",
    strict: bool = False,
) -> PolicyCheckResult:
    """Check every subject field, SAN DNS name and the key type.

    Args:
        policy: Compiled policy.
        request: Candidate request.
        strict: Report locked fields missing from the request as violations.

    Returns:
        The full result; ``passed`` is False if any violation was found.
    """
    violations: list[PolicyViolation] = []
    advisories: list[PolicyViolation] = []

    for field, values in _subject_values(request):
        rules = policy.rules_for(field)
        if not values:
            if ALLOW_ANY in rules:
                continue
            if field == FIELD_COMMON_NAME:
                message = "common name is not set; it must match an allowed domain before a CSR can be built"
            else:
                message = "field is locked by policy and not set; the platform will supply it"
            record = PolicyViolation(field=field, message=message)
            (violations if strict else advisories).append(record)
            continue
        for value in values:
            if not matches_any(value, rules):
                violations.append(
                    PolicyViolation(field=field, value=value, message=f"{value!r} does not match policy")
                )

    for name in request.san_dns:
        if not policy.san_dns_regexes:
            violations.append(
                PolicyViolation(field=FIELD_SAN, value=name, message="DNS subject alternative names are not allowed")
            )
        elif not matches_any(name, policy.san_dns_regexes):
            violations.append(
                PolicyViolation(field=FIELD_SAN, value=name, message=f"{name!r} is not in a whitelisted domain")
            )

    key_type = request.key_type
    if not policy.allows_key_type(key_type):
        violations.append(
            PolicyViolation(field=FIELD_KEY_TYPE, value=str(key_type), message=f"key type {key_type} is not allowed")
        )

    return PolicyCheckResult(policy_name=policy.name, violations=violations, advisories=advisories)
