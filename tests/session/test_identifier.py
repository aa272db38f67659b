"""Tests for IdentifierPolicy — session identifier generation and validation."""

import pytest

from sessionfly.session.identifier import DEFAULT_ID_LENGTH, IdentifierPolicy


class TestGenerate:
    def test_generates_fixed_length_identifier(self):
        policy = IdentifierPolicy()
        assert len(policy.generate()) == DEFAULT_ID_LENGTH

    def test_generated_identifier_is_alphanumeric(self):
        session_id = IdentifierPolicy().generate()
        assert session_id.isascii()
        assert session_id.isalnum()

    def test_generated_identifiers_are_unique(self):
        policy = IdentifierPolicy()
        ids = {policy.generate() for _ in range(1000)}
        assert len(ids) == 1000

    def test_generated_identifier_passes_validation(self):
        policy = IdentifierPolicy(length=32)
        session_id = policy.generate()
        assert policy.validate(session_id) == session_id

    def test_rejects_length_below_entropy_floor(self):
        with pytest.raises(ValueError):
            IdentifierPolicy(length=16)


class TestValidate:
    def test_accepts_well_formed_identifier(self):
        candidate = "a" * 20 + "B" * 10 + "0123456789"
        assert IdentifierPolicy().validate(candidate) == candidate

    @pytest.mark.parametrize(
        "candidate",
        [
            "",
            "short",
            "a" * 39,
            "a" * 41,
            "a" * 39 + "/",
            "a" * 39 + "-",
            "a" * 38 + "..",
            "a" * 39 + "é",
            "a" * 39 + " ",
        ],
    )
    def test_rejects_malformed_identifier(self, candidate):
        assert IdentifierPolicy().validate(candidate) is None

    def test_rejects_non_string(self):
        policy = IdentifierPolicy()
        assert policy.validate(None) is None
        assert policy.validate(12345) is None
        assert policy.validate(b"a" * 40) is None
