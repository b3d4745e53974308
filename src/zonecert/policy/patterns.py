# Copyright (c) ZoneCert Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Rule pattern helpers.

Every rule the compiler emits goes through :func:`anchor`, so all patterns
are of the form ``^...$`` and are matched against the whole value.
"""

import re
from functools import lru_cache
from typing import Iterable

ALLOW_ANY = "^.*$"

_DOMAIN_LABEL = r"[\w\-]+"
_WILDCARD_DOMAIN_LABEL = r"[\w\-*]+"


def _has_end_anchor(pattern: str) -> bool:
    if not pattern.endswith("$"):
        return False
    # an odd run of backslashes before the "$" escapes it
    backslashes = len(pattern[:-1]) - len(pattern[:-1].rstrip("\\"))
    return backslashes % 2 == 0


def anchor(pattern: str) -> str:
    """Prefix ``^`` and suffix ``$`` unless already present."""
    if not pattern.startswith("^"):
        pattern = "^" + pattern
    if not _has_end_anchor(pattern):
        pattern = pattern + "$"
    return pattern


def literal(value: str) -> str:
    """An anchored pattern matching exactly *value*."""
    return anchor(re.escape(value))


def domain_pattern(domain: str, allow_wildcards: bool = False) -> str:
    """Word/hyphen characters (plus ``*`` with wildcards) followed by ``.domain``."""
    label = _WILDCARD_DOMAIN_LABEL if allow_wildcards else _DOMAIN_LABEL
    return anchor(label + re.escape("." + domain))


@lru_cache(maxsize=1024)
def _compiled(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.DOTALL)


def matches_any(value: str, patterns: Iterable[str]) -> bool:
    """True if *value* fully matches at least one pattern."""
    return any(_compiled(p).fullmatch(value) for p in patterns)
