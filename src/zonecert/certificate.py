# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Issued Certificate

The leaf certificate, its issuer chain (leaf-adjacent first) and, when
available, the private key that matches it.
"""

import re
from typing import Optional

from cryptography import x509
from pydantic import BaseModel, Field

_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 ]+)-----[\s\S]*?-----END (?P=label)-----"
)


def parse_pem_list(text: str, label: Optional[str] = None) -> list[str]:
    """Split a multi-PEM bundle into its blocks, in order.

    Args:
        text: Text containing one or more PEM blocks.
        label: Only keep blocks of this type (e.g. ``CERTIFICATE``).
    """
    return [
        m.group(0) + "\n"
        for m in _PEM_BLOCK.finditer(text)
        if label is None or m.group("label") == label
    ]


class Certificate(BaseModel):
    """An issued certificate.

    Attributes:
        cert: Leaf certificate PEM.
        chain: Issuer certificate PEMs, leaf-adjacent first.
        private_key: Private key PEM, if known.
    """

    cert: str
    chain: list[str] = Field(default_factory=list)
    private_key: Optional[str] = None

    @classmethod
    def from_full_chain(cls, full_chain: str, private_key: Optional[str] = None) -> "Certificate":
        """Build from a PEM bundle ordered leaf first.

        Raises:
            ValueError: If the bundle holds no certificate.
        """
        pems = parse_pem_list(full_chain, label="CERTIFICATE")
        if not pems:
            raise ValueError("No certificate found in chain")
        keys = [pem for pem in parse_pem_list(full_chain) if "PRIVATE KEY-----" in pem.split("\n", 1)[0]]
        if private_key is None and keys:
            private_key = keys[0]
        return cls(cert=pems[0], chain=pems[1:], private_key=private_key)

    @property
    def leaf(self) -> x509.Certificate:
        """The leaf parsed with ``cryptography``."""
        return x509.load_pem_x509_certificate(self.cert.encode("ascii"))
