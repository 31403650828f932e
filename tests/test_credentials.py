"""Tests for credential validation."""

import pytest

from services.credentials import CredentialValidator
from services.errors import InvalidCredentialsError

from conftest import PASSWORD


class TestCredentialValidator:
    def test_valid_credentials_return_user(self, memory_store, user):
        found = CredentialValidator(memory_store).validate("a@x.com", PASSWORD)
        assert found.id == user.id

    def test_email_is_normalized(self, memory_store, user):
        found = CredentialValidator(memory_store).validate("  A@X.com ", PASSWORD)
        assert found.id == user.id

    def test_unknown_email_and_wrong_password_look_identical(self, memory_store, user):
        validator = CredentialValidator(memory_store)

        with pytest.raises(InvalidCredentialsError) as wrong_password:
            validator.validate("a@x.com", "not-the-password")
        with pytest.raises(InvalidCredentialsError) as unknown_user:
            validator.validate("nobody@x.com", PASSWORD)

        assert type(wrong_password.value) is type(unknown_user.value)
        assert str(wrong_password.value) == str(unknown_user.value)

    def test_empty_password_is_rejected(self, memory_store, user):
        with pytest.raises(InvalidCredentialsError):
            CredentialValidator(memory_store).validate("a@x.com", "")
