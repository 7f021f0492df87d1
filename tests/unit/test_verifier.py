"""Unit tests for SAML signature verification.

Covers:
- End-to-end verification of signed assertion XML
- Tampering detection (assertion content, signature value, reference)
- Validity window checks
"""

from datetime import timedelta

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from intuit_cad.models.saml import Signature
from intuit_cad.saml.assertion import AssertionBuilder, serialize_assertion
from intuit_cad.saml.signature import sign_assertion
from intuit_cad.saml.verifier import (
    SignatureVerifier,
    parse_assertion_times,
    parse_saml_time,
)


@pytest.fixture
def assertion(fixed_now):
    return AssertionBuilder().build("test.provider.id", "customer-42", now=fixed_now)


@pytest.fixture
def signed_xml(assertion, private_key_path):
    return serialize_assertion(sign_assertion(assertion, private_key_path))


@pytest.fixture
def verifier(private_key_path):
    return SignatureVerifier.from_private_key_file(private_key_path)


class TestParseSamlTime:
    def test_round_trips_builder_format(self, fixed_now):
        assert parse_saml_time("2024-01-15T12:00:00.000Z") == fixed_now

    def test_rejects_other_formats(self):
        with pytest.raises(ValueError, match="Unexpected SAML timestamp"):
            parse_saml_time("2024-01-15T12:00:00Z")


class TestParseAssertionTimes:
    def test_reads_conditions(self, signed_xml, fixed_now):
        not_before, not_on_or_after = parse_assertion_times(signed_xml)

        assert not_before == fixed_now - timedelta(minutes=5)
        assert not_on_or_after == fixed_now + timedelta(minutes=10)

    def test_malformed_xml(self):
        with pytest.raises(ValueError, match="Invalid XML"):
            parse_assertion_times("<saml2:Assertion")


class TestVerifyAssertionXml:
    """Test end-to-end verification."""

    def test_valid_signature(self, verifier, signed_xml):
        assert verifier.verify_assertion_xml(signed_xml) is True

    def test_tampered_subject_fails(self, verifier, signed_xml):
        """Test changing the customer id after signing breaks the digest."""
        tampered = signed_xml.replace(">customer-42<", ">customer-43<")

        assert verifier.verify_assertion_xml(tampered) is False

    def test_tampered_signature_value_fails(self, verifier, signed_xml):
        start = signed_xml.index("<ds:SignatureValue>") + len("<ds:SignatureValue>")
        flipped = "B" if signed_xml[start] == "A" else "A"
        tampered = signed_xml[:start] + flipped + signed_xml[start + 1:]

        assert verifier.verify_assertion_xml(tampered) is False

    def test_reference_mismatch_fails(self, verifier, signed_xml, assertion):
        tampered = signed_xml.replace(
            f'ID="{assertion.reference_id}"', 'ID="_00000000000000000000000000000000"'
        )

        assert verifier.verify_assertion_xml(tampered) is False

    def test_other_key_fails(self, signed_xml):
        other = rsa.generate_private_key(public_exponent=65537, key_size=2048)

        assert SignatureVerifier(other.public_key()).verify_assertion_xml(signed_xml) is False

    def test_unsigned_assertion_raises(self, verifier, assertion):
        with pytest.raises(ValueError, match="No Signature"):
            verifier.verify_assertion_xml(serialize_assertion(assertion))

    def test_malformed_xml_raises(self, verifier):
        with pytest.raises(ValueError, match="Invalid XML"):
            verifier.verify_assertion_xml("<not-closed>")


class TestVerifySignature:
    def test_invalid_base64_is_rejected(self, verifier):
        signature = Signature(signature_value="!!!not base64!!!", signed_info="<x/>")

        assert verifier.verify_signature(signature) is False


class TestValidateTimestamps:
    """Test the validity window check."""

    def test_inside_window(self, verifier, assertion, fixed_now):
        assert verifier.validate_timestamps(assertion, now=fixed_now) is True

    def test_at_not_before_is_valid(self, verifier, assertion, fixed_now):
        assert verifier.validate_timestamps(assertion, now=fixed_now - timedelta(minutes=5))

    def test_before_window(self, verifier, assertion, fixed_now):
        assert not verifier.validate_timestamps(
            assertion, now=fixed_now - timedelta(minutes=5, seconds=1)
        )

    def test_at_not_on_or_after_is_expired(self, verifier, assertion, fixed_now):
        assert not verifier.validate_timestamps(assertion, now=fixed_now + timedelta(minutes=10))


class TestVerifyAndValidate:
    def test_success(self, verifier, assertion, signed_xml, fixed_now):
        is_valid, message = verifier.verify_and_validate(assertion, signed_xml, now=fixed_now)

        assert is_valid
        assert "successful" in message

    def test_expired(self, verifier, assertion, signed_xml, fixed_now):
        is_valid, message = verifier.verify_and_validate(
            assertion, signed_xml, now=fixed_now + timedelta(hours=1)
        )

        assert not is_valid
        assert "expired" in message

    def test_bad_signature(self, verifier, assertion, signed_xml, fixed_now):
        tampered = signed_xml.replace(">customer-42<", ">customer-43<")

        is_valid, message = verifier.verify_and_validate(assertion, tampered, now=fixed_now)

        assert not is_valid
        assert message == "Signature verification failed"

    def test_malformed(self, verifier, assertion, fixed_now):
        is_valid, message = verifier.verify_and_validate(assertion, "<broken", now=fixed_now)

        assert not is_valid
        assert message.startswith("Validation error")
