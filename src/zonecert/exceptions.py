# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for ZoneCert.

All ZoneCert exceptions inherit from ZoneCertError, enabling
consistent error handling across the CSR builder, the policy engine
and the platform connector.
"""

from typing import Optional, Sequence


class ZoneCertError(Exception):
    """Base exception for all ZoneCert errors."""


class ConfigurationError(ZoneCertError):
    """Unsupported algorithm or curve, or a missing required identity field."""


class KeyGenerationError(ZoneCertError):
    """The cryptographic backend failed to produce a key pair."""


class ValidationError(ZoneCertError):
    """A request violates one or more compiled policy rules.

    Attributes:
        fields: Names of the offending fields (``CN``, ``SAN``, ``keyType``...).
        violations: The full violation records, when available.
    """

    def __init__(
        self,
        message: str,
        fields: Sequence[str] = (),
        violations: Optional[Sequence] = None,
    ) -> None:
        super().__init__(message)
        self.fields = list(fields)
        self.violations = list(violations or [])


class ServerError(ZoneCertError):
    """The issuing platform answered with an unexpected status code."""

    def __init__(self, message: str, status: Optional[int] = None, body: object = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


__all__ = [
    "ZoneCertError",
    "ConfigurationError",
    "KeyGenerationError",
    "ValidationError",
    "ServerError",
]
