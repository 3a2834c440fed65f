"""Unit tests for auth/credentials.py -- CredentialValidator rule order and strength checks.

Covers:
- Blank username / blank password detection (whitespace counts as blank)
- Rule precedence: blank username > blank password > taken > weak
- Username uniqueness is a case-sensitive exact match
- Password strength boundary at exactly 8 characters, with and without each class
- Validation has no side effects on the existing-username container
"""

import pytest

from auth.credentials import (
    MSG_BLANK_PASSWORD,
    MSG_BLANK_USERNAME,
    MSG_USERNAME_TAKEN,
    MSG_VALID,
    MSG_WEAK_PASSWORD,
    CredentialValidator,
    ValidationResult,
    is_strong_password,
)
from core.errors import ErrorKind


@pytest.fixture
def validator() -> CredentialValidator:
    return CredentialValidator()


class TestBlankFields:
    @pytest.mark.parametrize("username", ["", "   ", "\t\n"])
    def test_blank_username(self, validator, username):
        result = validator.validate(username, "Passw0rd", set())
        assert result == ValidationResult.failure(ErrorKind.BLANK_USERNAME, MSG_BLANK_USERNAME)

    @pytest.mark.parametrize("password", ["", "    "])
    def test_blank_password(self, validator, password):
        result = validator.validate("alice@x.com", password, set())
        assert not result.ok
        assert result.kind is ErrorKind.BLANK_PASSWORD
        assert result.message == MSG_BLANK_PASSWORD

    def test_blank_username_wins_over_blank_password(self, validator):
        result = validator.validate("", "", set())
        assert result.kind is ErrorKind.BLANK_USERNAME


class TestPrecedence:
    def test_taken_wins_over_weak(self, validator):
        result = validator.validate("alice@x.com", "weak", {"alice@x.com"})
        assert result.kind is ErrorKind.USERNAME_TAKEN
        assert result.message == MSG_USERNAME_TAKEN

    def test_blank_password_wins_over_taken(self, validator):
        result = validator.validate("alice@x.com", " ", {"alice@x.com"})
        assert result.kind is ErrorKind.BLANK_PASSWORD

    def test_weak_when_free(self, validator):
        result = validator.validate("alice@x.com", "password", {"bob@x.com"})
        assert result.kind is ErrorKind.WEAK_PASSWORD
        assert result.message == MSG_WEAK_PASSWORD


class TestUniqueness:
    def test_match_is_case_sensitive(self, validator):
        result = validator.validate("Alice@x.com", "Passw0rd", {"alice@x.com"})
        assert result.ok

    def test_existing_collection_is_not_modified(self, validator):
        existing = ["bob@x.com"]
        validator.validate("alice@x.com", "Passw0rd", existing)
        assert existing == ["bob@x.com"]


class TestStrength:
    @pytest.mark.parametrize(
        "password",
        [
            "Abcdefg1",  # exactly 8, all three classes
            "1bcdefgH",
            "Passw0rd",
            "PASSWORd9",
            "Ab1!@#$%",  # symbols allowed but not required
        ],
    )
    def test_strong_at_and_above_boundary(self, validator, password):
        assert is_strong_password(password)
        result = validator.validate("alice@x.com", password, set())
        assert result == ValidationResult.success()
        assert result.message == MSG_VALID
        assert result.kind is None

    @pytest.mark.parametrize(
        "password",
        [
            "Abcdef1",  # 7 chars, all classes
            "abcdefg1",  # 8 chars, no uppercase
            "ABCDEFG1",  # 8 chars, no lowercase
            "Abcdefgh",  # 8 chars, no digit
            "12345678",  # digits only
            "!!!!!!!!",  # symbols only
        ],
    )
    def test_weak_below_boundary_or_missing_class(self, validator, password):
        assert not is_strong_password(password)
        result = validator.validate("alice@x.com", password, set())
        assert result.kind is ErrorKind.WEAK_PASSWORD
