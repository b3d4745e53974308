"""
ZoneCert - X.509 issuance against policy-governed zones

Key generation, PKCS#10 CSR construction, zone policy compilation and
enforcement, and a connector for the Trust Protection Platform REST API.

Version: 0.3.0
"""

__version__ = "0.3.0"

from .exceptions import (
    ZoneCertError,
    ConfigurationError,
    KeyGenerationError,
    ValidationError,
    ServerError,
)
from .config import IssuanceConfig
from .keys import KeyType, generate_private_key, all_key_types
from .csr import Subject, build_csr
from .request import CertificateRequest
from .certificate import Certificate
from .policy import (
    Policy,
    PolicyCheckResult,
    PolicyViolation,
    ZoneConfiguration,
    ZonePolicyDocument,
    compile_policy,
    check_request,
    extract_zone_configuration,
)
from .connection import TPPConnection

__all__ = [
    "__version__",
    # Errors
    "ZoneCertError",
    "ConfigurationError",
    "KeyGenerationError",
    "ValidationError",
    "ServerError",
    # Requests
    "IssuanceConfig",
    "KeyType",
    "generate_private_key",
    "all_key_types",
    "Subject",
    "build_csr",
    "CertificateRequest",
    "Certificate",
    # Policy
    "Policy",
    "PolicyCheckResult",
    "PolicyViolation",
    "ZoneConfiguration",
    "ZonePolicyDocument",
    "compile_policy",
    "check_request",
    "extract_zone_configuration",
    # Platform
    "TPPConnection",
]
