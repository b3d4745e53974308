"""
Zone Policy

Compilation of platform zone policy documents into regex rule sets,
enforcement of those rules against requests, and extraction of zone
default values.
"""

from .document import ZonePolicyDocument, PolicyBody, SubjectPolicy, KeyPairPolicy, LockableValue
from .patterns import ALLOW_ANY, anchor, literal, domain_pattern, matches_any
from .enforcer import PolicyCheckResult, PolicyViolation, check_request
from .compiler import Policy, compile_policy, compile_field, compile_domains, compile_key_types
from .zone_config import CertField, ZoneConfiguration, extract_zone_configuration

__all__ = [
    "ZonePolicyDocument",
    "PolicyBody",
    "SubjectPolicy",
    "KeyPairPolicy",
    "LockableValue",
    "ALLOW_ANY",
    "anchor",
    "literal",
    "domain_pattern",
    "matches_any",
    "PolicyCheckResult",
    "PolicyViolation",
    "check_request",
    "Policy",
    "compile_policy",
    "compile_field",
    "compile_domains",
    "compile_key_types",
    "CertField",
    "ZoneConfiguration",
    "extract_zone_configuration",
]
