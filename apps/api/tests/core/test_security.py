"""
Unit tests for password hashing, JWTs and the error taxonomy.
"""

from datetime import timedelta

from grantflow.core.exceptions import (
    ConflictError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from grantflow.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_empty_hash_never_verifies(self):
        """Anonymized accounts have an empty hash."""
        assert not verify_password("", "")
        assert not verify_password("anything", "")


class TestTokens:
    def test_access_token_round_trip(self):
        token = create_access_token("user-1", additional_claims={"roles": ["ROLE_USER"]})
        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"
        assert payload["roles"] == ["ROLE_USER"]

    def test_expired_token_decodes_to_none(self):
        token = create_access_token("user-1", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_garbage_decodes_to_none(self):
        assert decode_token("not-a-jwt") is None


class TestDomainErrors:
    """Status codes of the error taxonomy."""

    def test_status_codes(self):
        assert NotFoundError().status_code == 404
        assert ExpiredError().status_code == 400
        assert ForbiddenError().status_code == 403
        assert ConflictError("taken").status_code == 409
        assert ValidationFailedError({"name": ["x"]}).status_code == 422

    def test_forbidden_message_is_generic(self):
        assert ForbiddenError().message == "Access denied."

    def test_validation_failed_keeps_violations(self):
        error = ValidationFailedError({"concretizations[1]": ["validate.general.tooLong"]})
        assert error.violations == {"concretizations[1]": ["validate.general.tooLong"]}
        assert error.error_code == "VALIDATION_FAILED"
