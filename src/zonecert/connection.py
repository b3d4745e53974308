# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Trust Protection Platform Connector

Submits CSRs to the platform's ``vedsdk`` REST API, retrieves issued
certificates and fetches zone policy documents. Requests can be checked
against the zone policy before anything is sent.

Example:
    conn = TPPConnection("tpp.example.com", "admin", "secret")
    policy = conn.get_policy("Certificates\\\\Web")
    req = CertificateRequest("www.example.com")
    conn.request("Certificates\\\\Web", req, policy=policy)
    cert = conn.retrieve(req)
"""

from __future__ import annotations

import base64
import json
import logging
import re
import urllib.error
import urllib.request
from datetime import datetime, timezone
from typing import Any, Optional

from zonecert.certificate import Certificate
from zonecert.exceptions import ConfigurationError, ServerError
from zonecert.keys import private_key_to_pem
from zonecert.policy.compiler import Policy, compile_policy
from zonecert.policy.document import ZonePolicyDocument
from zonecert.policy.zone_config import ZoneConfiguration, extract_zone_configuration
from zonecert.request import CertificateRequest

logger = logging.getLogger(__name__)

URL_AUTHORIZE = "authorize/"
URL_CERTIFICATE_REQUESTS = "certificates/request"
URL_CERTIFICATE_RETRIEVE = "certificates/retrieve"
URL_CHECK_POLICY = "certificates/checkpolicy"
TOKEN_HEADER_NAME = "x-venafi-api-key"

POLICY_ROOT = "\\VED\\Policy"

_URL_PATTERN = re.compile(r"^https://[a-z\d]+[-a-z\d.]+[a-z\d][:\d]*/vedsdk/$")


def normalize_url(url: str) -> str:
    """Force ``https://``, a trailing slash and the ``vedsdk/`` suffix.

    Raises:
        ConfigurationError: If the result is not a valid platform URL.
    """
    if url.startswith("http://"):
        url = "https://" + url[len("http://"):]
    elif not url.startswith("https://"):
        url = "https://" + url
    if not url.endswith("/"):
        url += "/"
    if not url.endswith("/vedsdk/"):
        url += "vedsdk/"
    if not _URL_PATTERN.match(url):
        raise ConfigurationError(f"Bad platform URL: {url}")
    return url


def policy_dn(zone: str) -> str:
    """Translate a zone tag into its policy DN."""
    if not zone:
        raise ConfigurationError("Empty zone")
    if zone.startswith(POLICY_ROOT):
        return zone
    if zone.startswith("\\"):
        return POLICY_ROOT + zone
    return POLICY_ROOT + "\\" + zone


def parse_platform_date(value: str) -> datetime:
    """Parse ``/Date(1540000000000)/`` style timestamps (milliseconds)."""
    digits = re.sub(r"\D", "", value or "")
    if not digits:
        raise ServerError(f"Unparseable date from platform: {value!r}")
    return datetime.fromtimestamp(int(digits) / 1000, tz=timezone.utc)


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return {}
    try:
        return json.loads(raw.decode("utf-8"))
    except ValueError:
        return {"raw": raw.decode("utf-8", errors="replace")}


class TPPConnection:
    """Connector for the platform's ``vedsdk`` REST API."""

    def __init__(
        self,
        url: str,
        user: str,
        password: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not user or not password:
            raise ConfigurationError("Invalid credentials: user and password are required")
        self.url = normalize_url(url)
        self.user = user
        self._password = password
        self.timeout_seconds = timeout_seconds
        self._token: Optional[tuple[str, datetime]] = None

    # ── HTTP ──────────────────────────────────────────────────

    def _http_post(self, path: str, payload: dict, headers: Optional[dict] = None) -> tuple[int, Any]:
        req = urllib.request.Request(
            self.url + path,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json", **(headers or {})},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                return resp.status, _decode_body(resp.read())
        except urllib.error.HTTPError as e:
            return e.code, _decode_body(e.read())
        except urllib.error.URLError as e:
            raise ServerError(f"Cannot reach platform at {self.url}: {e.reason}") from e

    def _authorize(self) -> str:
        status, body = self._http_post(
            URL_AUTHORIZE, {"Username": self.user, "Password": self._password}
        )
        if status != 200:
            raise ServerError(f"Authorization failed with status {status}", status=status, body=body)
        try:
            token = body["APIKey"]
        except (KeyError, TypeError):
            raise ServerError("Authorization response has no APIKey", status=status, body=body)
        valid_until = parse_platform_date(body.get("ValidUntil", ""))
        self._token = (token, valid_until)
        logger.info("Authorized as %s until %s", self.user, valid_until.isoformat())
        return token

    def _post(self, path: str, payload: dict) -> tuple[int, Any]:
        if self._token is None or self._token[1] <= datetime.now(timezone.utc):
            token = self._authorize()
        else:
            token = self._token[0]
        return self._http_post(path, payload, {TOKEN_HEADER_NAME: token})

    # ── Certificates ──────────────────────────────────────────

    def request(
        self,
        zone: str,
        request: CertificateRequest,
        policy: Optional[Policy] = None,
        strict: bool = False,
    ) -> str:
        """Submit a request's CSR to a zone.

        With a ``policy`` the request is enforced first and nothing is sent
        if it fails.

        Returns:
            The platform identifier, also stored on ``request.id``.

        Raises:
            ValidationError: If the request violates ``policy``.
            ServerError: If the platform rejects the submission.
        """
        if policy is not None:
            policy.enforce(request, strict=strict)

        payload = {
            "PolicyDN": policy_dn(zone),
            "PKCS10": request.csr,
            "ObjectName": request.friendly_name,
            "DisableAutomaticRenewal": "true",
        }
        status, body = self._post(URL_CERTIFICATE_REQUESTS, payload)
        if status != 200:
            raise ServerError(f"Certificate request failed with status {status}", status=status, body=body)

        try:
            request.id = body["CertificateDN"]
        except (KeyError, TypeError):
            raise ServerError("Certificate request response has no CertificateDN", status=status, body=body)
        logger.info("Submitted request %s to zone %s", request.id, zone)
        return request.id

    def retrieve(self, request: CertificateRequest) -> Optional[Certificate]:
        """Fetch the issued certificate, or None while it is not ready.

        The request's private key is attached when the platform returns none
        and the request already holds one. No key is generated here.
        """
        if request.id is None:
            raise ConfigurationError("Request has not been submitted")

        payload = {
            "CertificateDN": request.id,
            "Format": "base64",
            "IncludeChain": "true",
            "RootFirstOrder": "false",
        }
        status, body = self._post(URL_CERTIFICATE_RETRIEVE, payload)
        if status != 200:
            logger.info("Certificate %s not ready (status %s)", request.id, status)
            return None

        try:
            full_chain = base64.b64decode(body["CertificateData"]).decode("utf-8")
            certificate = Certificate.from_full_chain(full_chain)
        except (KeyError, TypeError, ValueError) as e:
            raise ServerError(
                f"Unreadable certificate data for {request.id}: {e}", status=status, body=body
            ) from e
        existing_key = request.existing_private_key
        if certificate.private_key is None and existing_key is not None:
            certificate.private_key = private_key_to_pem(existing_key)
        return certificate

    # ── Zone policy ───────────────────────────────────────────

    def _policy_document(self, zone: str) -> ZonePolicyDocument:
        status, body = self._post(URL_CHECK_POLICY, {"PolicyDN": policy_dn(zone)})
        if status != 200 or body.get("Error"):
            raise ServerError(
                f"Reading policy for zone {zone} failed: {body.get('Error') or status}",
                status=status,
                body=body,
            )
        return ZonePolicyDocument.from_dict(body)

    def get_policy(self, zone: str) -> Policy:
        """Fetch and compile the zone's policy."""
        return compile_policy(self._policy_document(zone), policy_id=policy_dn(zone), name=zone)

    def read_zone_configuration(self, zone: str) -> ZoneConfiguration:
        """Fetch the zone's default field values."""
        return extract_zone_configuration(self._policy_document(zone))
