"""Unit tests for auth/accounts.py and auth/models.py -- registration and profile changes.

Covers:
- create_user() success persists a bcrypt hash, never the plaintext
- Check order: password mismatch, credential rules, bcrypt byte limit, blank name
- Surrounding whitespace in the email is trimmed at registration and login
- Duplicate email -> USERNAME_TAKEN (validator path and UNIQUE-constraint race path)
- User construction guard rejects blank fields and non-bcrypt hashes
- change_name() / get_profile() run the session gate first
"""

import pytest

from auth.accounts import (
    MSG_ACCOUNT_CREATED,
    MSG_BLANK_NAME,
    MSG_PASSWORD_MISMATCH,
    MSG_PASSWORD_TOO_LONG,
    AccountService,
)
from auth.credentials import CredentialValidator
from auth.models import User
from auth.tokens import hash_password, verify_password
from core.errors import ErrorKind, InvalidRequestError


class TestCreateUser:
    def test_success(self, accounts, user_store):
        result = accounts.create_user("alice@x.com", "Alice", "Passw0rd", "Passw0rd")
        assert result.ok, result.message
        assert result.message == MSG_ACCOUNT_CREATED

        user = user_store.get_by_email("alice@x.com")
        assert user is not None
        assert user.name == "Alice"
        assert user.hashed_password != "Passw0rd"
        assert verify_password("Passw0rd", user.hashed_password)

    def test_duplicate_email_is_taken(self, accounts, user_store):
        assert accounts.create_user("alice@x.com", "Alice", "Passw0rd", "Passw0rd").ok
        result = accounts.create_user("alice@x.com", "Other Alice", "Differ3nt", "Differ3nt")
        assert result.kind is ErrorKind.USERNAME_TAKEN
        assert len(user_store.list_users()) == 1
        assert user_store.get_by_email("alice@x.com").name == "Alice"

    def test_emails_differing_in_case_are_distinct(self, accounts, user_store):
        assert accounts.create_user("alice@x.com", "Alice", "Passw0rd", "Passw0rd").ok
        assert accounts.create_user("Alice@x.com", "Alice", "Passw0rd", "Passw0rd").ok
        assert len(user_store.list_users()) == 2

    def test_password_mismatch_checked_first(self, accounts, user_store):
        result = accounts.create_user("", "", "Passw0rd", "Passw0rd1")
        assert result.kind is ErrorKind.PASSWORD_MISMATCH
        assert result.message == MSG_PASSWORD_MISMATCH
        assert user_store.list_users() == []

    def test_credential_rules_before_name(self, accounts):
        result = accounts.create_user("alice@x.com", "", "weak", "weak")
        assert result.kind is ErrorKind.WEAK_PASSWORD

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name(self, accounts, user_store, name):
        result = accounts.create_user("alice@x.com", name, "Passw0rd", "Passw0rd")
        assert result.kind is ErrorKind.BLANK_NAME
        assert result.message == MSG_BLANK_NAME
        assert user_store.get_by_email("alice@x.com") is None

    def test_name_is_trimmed(self, accounts, user_store):
        accounts.create_user("alice@x.com", "  Alice  ", "Passw0rd", "Passw0rd")
        assert user_store.get_by_email("alice@x.com").name == "Alice"

    def test_password_over_bcrypt_limit_is_rejected(self, accounts, user_store):
        long_password = "Aa1" + "x" * 80
        result = accounts.create_user("long@x.com", "Long", long_password, long_password)
        assert not result.ok
        assert result.kind is ErrorKind.INVALID_REQUEST
        assert result.message == MSG_PASSWORD_TOO_LONG
        assert user_store.get_by_email("long@x.com") is None

    def test_multibyte_password_counts_bytes(self, accounts, user_store):
        at_limit = "Aa1" + "\u00e9" * 34 + "x"  # 3 + 68 + 1 = 72 bytes
        over_limit = "Aa1" + "\u00e9" * 35  # 73 bytes, 38 characters
        assert accounts.create_user("fits@x.com", "Fits", at_limit, at_limit).ok
        result = accounts.create_user("over@x.com", "Over", over_limit, over_limit)
        assert result.kind is ErrorKind.INVALID_REQUEST

    def test_email_is_trimmed(self, accounts, sessions, user_store):
        assert accounts.create_user("  sp@x.com ", "Spacey", "Passw0rd", "Passw0rd").ok
        assert user_store.get_by_email("sp@x.com") is not None
        assert accounts.create_user("sp@x.com", "Twin", "Passw0rd", "Passw0rd").kind is ErrorKind.USERNAME_TAKEN

        token = sessions.login("sp@x.com ", "Passw0rd")
        assert token is not None
        assert sessions.validate_authentication("sp@x.com", token)

    def test_concurrent_registration_race(self, user_store, sessions):
        """The validator's existence check can pass for two racing requests;
        the UNIQUE constraint still rejects the second INSERT."""

        class _BlindValidator(CredentialValidator):
            def validate(self, username, password, existing_usernames):
                return super().validate(username, password, set())

        service = AccountService(user_store, sessions, validator=_BlindValidator())
        assert service.create_user("alice@x.com", "Alice", "Passw0rd", "Passw0rd").ok
        result = service.create_user("alice@x.com", "Alice", "Passw0rd", "Passw0rd")
        assert result.kind is ErrorKind.USERNAME_TAKEN
        assert len(user_store.list_users()) == 1


class TestUserGuard:
    def test_plaintext_password_rejected(self):
        with pytest.raises(ValueError):
            User(email="alice@x.com", name="Alice", hashed_password="Passw0rd")

    @pytest.mark.parametrize("email,name", [("", "Alice"), ("alice@x.com", " ")])
    def test_blank_fields_rejected(self, email, name):
        with pytest.raises(ValueError):
            User(email=email, name=name, hashed_password=hash_password("Passw0rd"))


class TestProfile:
    @pytest.fixture
    def token(self, accounts, sessions):
        accounts.create_user("alice@x.com", "Alice", "Passw0rd", "Passw0rd")
        return sessions.login("alice@x.com", "Passw0rd")

    def test_get_profile(self, accounts, token):
        user = accounts.get_profile("alice@x.com", token)
        assert user.email == "alice@x.com"
        assert user.name == "Alice"

    def test_get_profile_bad_token(self, accounts, token):
        assert accounts.get_profile("alice@x.com", "bogus-token") is None

    def test_change_name(self, accounts, user_store, token):
        assert accounts.change_name("alice@x.com", token, " Alice Liddell ") is True
        assert user_store.get_by_email("alice@x.com").name == "Alice Liddell"

    def test_change_name_requires_session(self, accounts, user_store, token):
        assert accounts.change_name("alice@x.com", "bogus-token", "Mallory") is False
        assert user_store.get_by_email("alice@x.com").name == "Alice"

    def test_change_name_blank_rejected(self, accounts, token):
        with pytest.raises(InvalidRequestError):
            accounts.change_name("alice@x.com", token, "  ")

    def test_names_need_not_be_unique(self, accounts, sessions, user_store, token):
        accounts.create_user("bob@x.com", "Bob", "Hunter22B", "Hunter22B")
        assert accounts.change_name("alice@x.com", token, "Bob")
        assert {u.name for u in user_store.list_users()} == {"Bob"}
