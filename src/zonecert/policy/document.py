# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Zone Policy Document

Pydantic models for the raw policy document the platform returns for a zone.
Both the platform's PascalCase keys (``WhitelistedDomains``,
``Subject.Organization.Locked``) and snake_case field names are accepted.
"""

import json
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class _DocumentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class LockableValue(_DocumentModel):
    """A field the platform may lock, with a single value or a value list."""

    locked: bool = Field(default=False, alias="Locked")
    value: Optional[Union[int, str]] = Field(default=None, alias="Value")
    values: list[str] = Field(default_factory=list, alias="Values")

    @field_validator("values", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("locked", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value

    def all_values(self) -> list[str]:
        """The single value when present, otherwise the value list."""
        if self.value is not None:
            return [str(self.value)]
        return list(self.values)


class SubjectPolicy(_DocumentModel):
    organization: LockableValue = Field(default_factory=LockableValue, alias="Organization")
    organizational_unit: LockableValue = Field(default_factory=LockableValue, alias="OrganizationalUnit")
    locality: LockableValue = Field(default_factory=LockableValue, alias="City")
    province: LockableValue = Field(default_factory=LockableValue, alias="State")
    country: LockableValue = Field(default_factory=LockableValue, alias="Country")


class KeyPairPolicy(_DocumentModel):
    key_algorithm: LockableValue = Field(default_factory=LockableValue, alias="KeyAlgorithm")
    key_size: LockableValue = Field(default_factory=LockableValue, alias="KeySize")
    elliptic_curve: LockableValue = Field(default_factory=LockableValue, alias="EllipticCurve")


class PolicyBody(_DocumentModel):
    """The ``Policy`` section of a zone policy document."""

    subject: SubjectPolicy = Field(default_factory=SubjectPolicy, alias="Subject")
    key_pair: KeyPairPolicy = Field(default_factory=KeyPairPolicy, alias="KeyPair")
    whitelisted_domains: list[str] = Field(default_factory=list, alias="WhitelistedDomains")
    wildcards_allowed: bool = Field(default=False, alias="WildcardsAllowed")

    san_dns_allowed: bool = Field(default=True, alias="SubjAltNameDnsAllowed")
    san_ip_allowed: bool = Field(default=False, alias="SubjAltNameIpAllowed")
    san_email_allowed: bool = Field(default=False, alias="SubjAltNameEmailAllowed")
    san_uri_allowed: bool = Field(default=False, alias="SubjAltNameUriAllowed")
    san_upn_allowed: bool = Field(default=False, alias="SubjAltNameUpnAllowed")

    @field_validator("whitelisted_domains", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ZonePolicyDocument(_DocumentModel):
    """
    Complete zone policy document.

    Documents are usually fetched from the platform, but can be loaded from
    YAML/JSON for offline checks.
    """

    policy: PolicyBody = Field(default_factory=PolicyBody, alias="Policy")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ZonePolicyDocument":
        """Load from a mapping, with or without the ``Policy`` wrapper."""
        if "Policy" in data or "policy" in data:
            return cls.model_validate(dict(data))
        return cls(policy=PolicyBody.model_validate(dict(data)))

    @classmethod
    def coerce(cls, document: Union["ZonePolicyDocument", Mapping[str, Any]]) -> "ZonePolicyDocument":
        if isinstance(document, cls):
            return document
        return cls.from_dict(document)

    @classmethod
    def from_json(cls, json_content: str) -> "ZonePolicyDocument":
        """Load a policy document from JSON."""
        return cls.from_dict(json.loads(json_content))

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "ZonePolicyDocument":
        """Load a policy document from YAML."""
        return cls.from_dict(yaml.safe_load(yaml_content) or {})

    @classmethod
    def from_file(cls, path: str | Path) -> "ZonePolicyDocument":
        """Load a policy document from a ``.json``, ``.yaml`` or ``.yml`` file."""
        path = Path(path)
        content = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return cls.from_json(content)
        return cls.from_yaml(content)
