"""Tests for checking requests against compiled policies."""

import logging
import threading

import pytest

from zonecert.exceptions import ValidationError
from zonecert.keys import KeyType
from zonecert.policy.compiler import compile_policy
from zonecert.policy.enforcer import PolicyCheckResult, PolicyViolation, check_request
from zonecert.request import CertificateRequest


@pytest.fixture
def locked_policy(locked_document):
    return compile_policy(locked_document, name="web")


def _compliant(**overrides):
    fields = dict(
        organization="Example Corp",
        organizational_unit=["Web"],
        country="US",
        province="Utah",
        locality="Anywhere",
        san_dns=["www.example.com"],
        key_algorithm="ecdsa",
        key_curve="prime256v1",
    )
    fields.update(overrides)
    return CertificateRequest(fields.pop("common_name", "www.example.com"), **fields)


class TestCheckRequest:
    def test_compliant_request_passes(self, locked_policy):
        result = check_request(locked_policy, _compliant())
        assert result.passed
        assert result.violations == []
        assert result.advisories == []

    def test_full_report(self, locked_policy):
        req = _compliant(
            common_name="www.example.org",
            organization="Other Corp",
            country="CA",
            key_algorithm="rsa",
            key_length=2048,
        )
        result = check_request(locked_policy, req)
        assert not result.passed
        assert result.violating_fields == ["CN", "O", "C", "keyType"]

    def test_ou_each_value_checked(self, locked_policy):
        result = check_request(locked_policy, _compliant(organizational_unit=["Web", "Dev"]))
        assert result.violating_fields == ["OU"]
        assert result.violations[0].value == "Dev"

    def test_check_does_not_generate_key(self, locked_policy):
        req = _compliant()
        check_request(locked_policy, req)
        assert req.state.__class__.__name__ == "Unresolved"


class TestSanDns:
    def test_disallowed_without_sans_passes(self):
        policy = compile_policy({"Policy": {"SubjAltNameDnsAllowed": False}})
        assert check_request(policy, CertificateRequest("www.example.com")).passed

    def test_disallowed_with_san_fails(self):
        policy = compile_policy({"Policy": {"SubjAltNameDnsAllowed": False}})
        result = check_request(policy, CertificateRequest("www.example.com", san_dns=["www.example.com"]))
        assert result.violating_fields == ["SAN"]

    def test_outside_whitelist(self, locked_policy):
        result = check_request(locked_policy, _compliant(san_dns=["www.example.com", "evil.example.org"]))
        assert result.violating_fields == ["SAN"]
        assert result.violations[0].value == "evil.example.org"

    def test_empty_names_ignored(self):
        policy = compile_policy({"Policy": {"SubjAltNameDnsAllowed": False}})
        req = CertificateRequest("www.example.com", san_dns=["", ""])
        assert req.san_dns == ()
        assert check_request(policy, req).passed


class TestKeyType:
    def test_ec_p256_lock_rejects_rsa_2048(self):
        policy = compile_policy(
            {
                "Policy": {
                    "KeyPair": {
                        "KeyAlgorithm": {"Locked": True, "Value": "EC"},
                        "EllipticCurve": {"Locked": True, "Value": "p256"},
                    }
                }
            }
        )
        assert policy.key_types == (KeyType.ecdsa("prime256v1"),)
        result = check_request(policy, CertificateRequest("www.example.com", key_algorithm="rsa", key_length=2048))
        assert result.violating_fields == ["keyType"]
        assert check_request(policy, CertificateRequest("www.example.com", key_algorithm="ecdsa")).passed

    def test_supplied_key_checked(self, locked_policy, rsa_key):
        result = check_request(locked_policy, _compliant(private_key=rsa_key, key_algorithm=None, key_curve=None))
        assert result.violating_fields == ["keyType"]


class TestLockedAbsentFields:
    def test_advisory_by_default(self, locked_policy):
        req = CertificateRequest("www.example.com", key_algorithm="ecdsa")
        result = check_request(locked_policy, req)
        assert result.passed
        assert {a.field for a in result.advisories} == {"O", "OU", "C", "ST"}

    def test_strict_makes_violations(self, locked_policy):
        req = CertificateRequest("www.example.com", key_algorithm="ecdsa")
        result = check_request(locked_policy, req, strict=True)
        assert not result.passed
        assert result.violating_fields == ["O", "OU", "C", "ST"]

    def test_unlocked_absent_fields_are_silent(self, locked_policy):
        result = check_request(locked_policy, _compliant(locality=None))
        assert result.advisories == []

    def test_present_but_empty_is_checked(self, locked_policy):
        result = check_request(locked_policy, _compliant(organization=""))
        assert result.violating_fields == ["O"]

    def test_missing_common_name(self, locked_policy):
        result = check_request(locked_policy, _compliant(common_name=None))
        assert [a.field for a in result.advisories] == ["CN"]
        message = result.advisories[0].message
        assert "common name" in message
        assert "locked" not in message

    def test_missing_common_name_strict(self, locked_policy):
        result = check_request(locked_policy, _compliant(common_name=None), strict=True)
        assert result.violating_fields == ["CN"]


class TestEnforce:
    def test_raises_with_fields(self, locked_policy):
        with pytest.raises(ValidationError) as exc_info:
            locked_policy.enforce(_compliant(country="CA"))
        assert exc_info.value.fields == ["C"]
        assert exc_info.value.violations[0].value == "CA"

    def test_returns_result_on_pass(self, locked_policy):
        assert locked_policy.enforce(_compliant()).passed

    def test_advisories_logged(self, locked_policy, caplog):
        with caplog.at_level(logging.WARNING, logger="zonecert.policy.compiler"):
            locked_policy.enforce(CertificateRequest("www.example.com", key_algorithm="ecdsa"))
        assert "advisory" in caplog.text

    def test_strict_raises(self, locked_policy):
        with pytest.raises(ValidationError):
            locked_policy.enforce(CertificateRequest("www.example.com", key_algorithm="ecdsa"), strict=True)


class TestPolicyCheckResult:
    def test_violating_fields_deduplicated(self):
        result = PolicyCheckResult(
            violations=[
                PolicyViolation(field="SAN", value="a", message="x"),
                PolicyViolation(field="SAN", value="b", message="x"),
                PolicyViolation(field="CN", value="c", message="x"),
            ]
        )
        assert result.violating_fields == ["SAN", "CN"]

    def test_raise_for_violations_noop_when_passed(self):
        PolicyCheckResult().raise_for_violations()


class TestConcurrentEnforcement:
    def test_shared_policy_distinct_requests(self, locked_policy):
        requests = [_compliant() if i % 2 else _compliant(country="CA") for i in range(20)]
        expected = [check_request(locked_policy, r).passed for r in requests]
        results = [None] * len(requests)

        def worker(index):
            results[index] = check_request(locked_policy, requests[index]).passed

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(len(requests))]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == expected
        assert results.count(True) == 10
