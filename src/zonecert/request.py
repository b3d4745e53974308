# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Certificate Request

The caller's desired identity (subject attributes, SAN DNS names, key shape)
plus lazy, at-most-once generation of the key pair and the CSR.

Generation is modelled as explicit states guarded by a lock:

    Unresolved -> KeyResolved(private_key) -> Resolved(private_key, csr)

A request built with a CSR starts out Resolved and never regenerates it.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Union

from cryptography import x509

from zonecert.config import IssuanceConfig
from zonecert.constants import KEY_ALGORITHM_ECDSA, KEY_ALGORITHM_RSA
from zonecert.csr import Subject, build_csr
from zonecert.exceptions import ConfigurationError
from zonecert.keys import (
    KeyType,
    PrivateKey,
    generate_private_key,
    key_type_of,
    load_private_key,
    private_key_to_pem,
)

if TYPE_CHECKING:
    from zonecert.policy.zone_config import ZoneConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unresolved:
    """Neither key nor CSR exists yet."""


@dataclass(frozen=True)
class KeyResolved:
    """The key pair exists; the CSR does not."""

    private_key: PrivateKey


@dataclass(frozen=True)
class Resolved:
    """The CSR exists. ``private_key`` is None for a supplied CSR without a key."""

    private_key: Optional[PrivateKey]
    csr: str


RequestState = Union[Unresolved, KeyResolved, Resolved]


def _as_tuple(value: Union[str, Sequence[str], None]) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class CertificateRequest:
    """A certificate request on behalf of a caller.

    Example:
        >>> req = CertificateRequest("www.example.com", san_dns=["www.example.com"])
        >>> req.csr.startswith("-----BEGIN CERTIFICATE REQUEST-----")
        True
        >>> req.csr == req.csr
        True
    """

    def __init__(
        self,
        common_name: Optional[str] = None,
        *,
        organization: Optional[str] = None,
        organizational_unit: Union[str, Sequence[str], None] = None,
        country: Optional[str] = None,
        province: Optional[str] = None,
        locality: Optional[str] = None,
        san_dns: Optional[Iterable[str]] = None,
        key_algorithm: Optional[str] = None,
        key_length: Optional[int] = None,
        key_curve: Optional[str] = None,
        private_key: Union[PrivateKey, str, bytes, None] = None,
        csr: Optional[str] = None,
        friendly_name: Optional[str] = None,
        config: Optional[IssuanceConfig] = None,
    ) -> None:
        """
        Initialize the request.

        Args:
            common_name: Subject CN; required unless ``csr`` is supplied.
            organization: Subject O.
            organizational_unit: One OU or a list of OUs.
            country: Two-letter subject C.
            province: Subject ST.
            locality: Subject L.
            san_dns: DNS names for the subjectAltName extension.
            key_algorithm: ``rsa`` or ``ecdsa`` (config default when None).
            key_length: RSA modulus size (config default when None).
            key_curve: EC curve name (config default when None).
            private_key: Existing key object or PEM text to use instead of
                generating one.
            csr: Existing PEM CSR, returned verbatim by :attr:`csr`.
            friendly_name: Display name on the platform (defaults to CN).
            config: Issuance defaults.
        """
        self.config = config or IssuanceConfig()
        self._lock = threading.Lock()

        self._subject = Subject(
            common_name=common_name,
            organization=organization,
            organizational_units=_as_tuple(organizational_unit),
            country=country,
            province=province,
            locality=locality,
        )
        self._san_dns = tuple(name for name in (san_dns or ()) if name)
        self._friendly_name = friendly_name
        self._id: Optional[str] = None

        self._key_explicit = private_key is not None or any(
            v is not None for v in (key_algorithm, key_length, key_curve)
        )
        self._key_algorithm = key_algorithm or self.config.key_algorithm
        self._key_length = key_length if key_length is not None else self.config.key_length
        self._key_curve = key_curve or self.config.key_curve

        if isinstance(private_key, (str, bytes)):
            private_key = load_private_key(private_key)

        self._state: RequestState
        if csr is not None:
            self._state = Resolved(private_key=private_key, csr=csr)
        elif private_key is not None:
            self._state = KeyResolved(private_key=private_key)
        else:
            self._state = Unresolved()

    def __repr__(self) -> str:
        return (
            f"CertificateRequest(common_name={self.common_name!r}, "
            f"state={type(self._state).__name__})"
        )

    # ── Identity attributes ───────────────────────────────────

    @property
    def subject(self) -> Subject:
        return self._subject

    @property
    def common_name(self) -> Optional[str]:
        return self._subject.common_name

    @property
    def organization(self) -> Optional[str]:
        return self._subject.organization

    @property
    def organizational_units(self) -> tuple[str, ...]:
        return self._subject.organizational_units

    @property
    def country(self) -> Optional[str]:
        return self._subject.country

    @property
    def province(self) -> Optional[str]:
        return self._subject.province

    @property
    def locality(self) -> Optional[str]:
        return self._subject.locality

    @property
    def san_dns(self) -> tuple[str, ...]:
        return self._san_dns

    @property
    def friendly_name(self) -> Optional[str]:
        """Display name on the platform; falls back to the common name."""
        if self._friendly_name is not None:
            return self._friendly_name
        return self.common_name

    @property
    def id(self) -> Optional[str]:
        """Platform-assigned identifier, set by the connector after submission."""
        return self._id

    @id.setter
    def id(self, value: Optional[str]) -> None:
        self._id = value

    @property
    def state(self) -> RequestState:
        return self._state

    # ── Key material ──────────────────────────────────────────

    def _requested_key_type(self) -> KeyType:
        if self._key_algorithm == KEY_ALGORITHM_RSA:
            return KeyType.rsa(self._key_length)
        if self._key_algorithm == KEY_ALGORITHM_ECDSA:
            return KeyType.ecdsa(self._key_curve)
        raise ConfigurationError(f"Unsupported key algorithm: {self._key_algorithm!r}")

    @property
    def key_type(self) -> KeyType:
        """The resolved key shape: from the actual key once one exists."""
        state = self._state
        if isinstance(state, (KeyResolved, Resolved)) and state.private_key is not None:
            return key_type_of(state.private_key)
        if isinstance(state, Resolved):
            try:
                csr = x509.load_pem_x509_csr(state.csr.encode("ascii"))
            except ValueError as e:
                raise ConfigurationError(f"Supplied CSR cannot be parsed: {e}") from e
            return key_type_of(csr.public_key())
        return self._requested_key_type()

    def _resolve_key(self) -> Optional[PrivateKey]:
        """Move Unresolved -> KeyResolved. Caller must hold the lock."""
        state = self._state
        if isinstance(state, Unresolved):
            private_key = generate_private_key(self._requested_key_type())
            self._state = KeyResolved(private_key=private_key)
            return private_key
        return state.private_key

    @property
    def private_key(self) -> Optional[PrivateKey]:
        """The key pair, generated on first access and cached.

        None only when the request was built from a CSR without a key.
        """
        with self._lock:
            return self._resolve_key()

    @property
    def private_key_pem(self) -> Optional[str]:
        private_key = self.private_key
        if private_key is None:
            return None
        return private_key_to_pem(private_key)

    @property
    def existing_private_key(self) -> Optional[PrivateKey]:
        """The key pair if one was supplied or already generated; never generates."""
        state = self._state
        if isinstance(state, (KeyResolved, Resolved)):
            return state.private_key
        return None

    # ── CSR ───────────────────────────────────────────────────

    @property
    def csr(self) -> str:
        """The PEM CSR, built on first access and never rebuilt.

        Raises:
            ConfigurationError: If there is no common name and no supplied CSR.
            KeyGenerationError: If the key pair cannot be generated.
        """
        with self._lock:
            state = self._state
            if isinstance(state, Resolved):
                return state.csr
            if not self.common_name:
                raise ConfigurationError("Common name is required to generate a CSR")

            private_key = self._resolve_key()
            csr = build_csr(
                self._subject,
                private_key,
                san_dns=self._san_dns,
                hash_algorithm=self.config.hash_algorithm(),
            )
            self._state = Resolved(private_key=private_key, csr=csr)
            logger.debug("Resolved request for %s", self.common_name)
            return csr

    # ── Zone defaults ─────────────────────────────────────────

    def update_from_zone_config(self, zone_config: "ZoneConfiguration") -> None:
        """Fill unset subject fields and key parameters from zone defaults.

        Values the caller set explicitly are kept. The key shape is only
        taken from the zone when no key parameters were given and no key
        exists yet.

        Raises:
            ConfigurationError: If the CSR has already been generated.
        """
        with self._lock:
            if isinstance(self._state, Resolved):
                raise ConfigurationError("Cannot update a request whose CSR is already generated")

            updates = {}
            for attr, cert_field in (
                ("organization", zone_config.organization),
                ("country", zone_config.country),
                ("province", zone_config.province),
                ("locality", zone_config.locality),
            ):
                if getattr(self._subject, attr) is None and cert_field.value is not None:
                    updates[attr] = cert_field.value
            if not self._subject.organizational_units and zone_config.organizational_unit.value:
                updates["organizational_units"] = _as_tuple(zone_config.organizational_unit.value)
            if updates:
                self._subject = dataclasses.replace(self._subject, **updates)

            key_type = zone_config.key_type
            if key_type is not None and not self._key_explicit and isinstance(self._state, Unresolved):
                self._key_algorithm = key_type.algorithm
                if key_type.algorithm == KEY_ALGORITHM_RSA:
                    self._key_length = key_type.key_size
                else:
                    self._key_curve = key_type.curve

            logger.debug(
                "Applied zone defaults to %s: %s",
                self.common_name,
                ", ".join(sorted(updates)) or "none",
            )
