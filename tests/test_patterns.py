"""Tests for rule pattern helpers."""

import re

import pytest

from zonecert.policy.patterns import ALLOW_ANY, anchor, domain_pattern, literal, matches_any


class TestAnchor:
    @pytest.mark.parametrize(
        "pattern,expected",
        [
            ("abc", "^abc$"),
            ("^abc", "^abc$"),
            ("abc$", "^abc$"),
            ("^abc$", "^abc$"),
            (r"price\$", r"^price\$$"),
            (r"path\\$", r"^path\\$"),
        ],
    )
    def test_anchor(self, pattern, expected):
        assert anchor(pattern) == expected

    def test_idempotent(self):
        assert anchor(anchor("a.b")) == anchor("a.b")


class TestLiteral:
    def test_escapes_metacharacters(self):
        pattern = literal("a.b*c")
        assert matches_any("a.b*c", [pattern])
        assert not matches_any("axbbc", [pattern])

    def test_exact_only(self):
        pattern = literal("Example")
        assert matches_any("Example", [pattern])
        for other in ("Example ", " Example", "example", "Exampl", "xample"):
            assert not matches_any(other, [pattern])


class TestDomainPattern:
    def test_prefix_required(self):
        pattern = domain_pattern("example.com")
        assert matches_any("foo.example.com", [pattern])
        assert matches_any("foo-bar_1.example.com", [pattern])
        assert not matches_any("example.com", [pattern])
        assert not matches_any("fooexample.com", [pattern])

    def test_wildcards(self):
        assert not matches_any("*.example.com", [domain_pattern("example.com")])
        assert matches_any("*.example.com", [domain_pattern("example.com", allow_wildcards=True)])

    def test_domain_escaped(self):
        assert not matches_any("fooXexampleXcom", [domain_pattern("example.com")])
        assert re.escape(".example.com") in domain_pattern("example.com")


class TestMatchesAny:
    @pytest.mark.parametrize("value", ["", "anything", "a.b*c(d)[e]", "line\nbreak"])
    def test_allow_any(self, value):
        assert matches_any(value, [ALLOW_ANY])

    def test_empty_rule_set_rejects(self):
        assert not matches_any("anything", [])

    def test_any_of(self):
        assert matches_any("b", [literal("a"), literal("b")])
