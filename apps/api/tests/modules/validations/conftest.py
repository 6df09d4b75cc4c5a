"""
Fixtures for validation tests.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from grantflow.modules.validations.helpers import hash_token
from grantflow.modules.validations.models import Validation, ValidationType

PLAIN_TOKEN = "plain-token-from-the-link"


@pytest.fixture
def plain_token():
    return PLAIN_TOKEN


@pytest.fixture
def validation_factory():
    """Build transient validations holding the hash of PLAIN_TOKEN."""

    def _make(
        type: ValidationType = ValidationType.ACCOUNT,
        expires_in: timedelta = timedelta(hours=48),
        content: dict | None = None,
        user_id=None,
    ) -> Validation:
        now = datetime.now(UTC)
        return Validation(
            id=uuid4(),
            user_id=user_id or uuid4(),
            type=type,
            token=hash_token(PLAIN_TOKEN),
            content=content,
            expires_at=now + expires_in,
            created_at=now,
        )

    return _make


@pytest.fixture
def valid_validation(validation_factory):
    return validation_factory()


@pytest.fixture
def expired_validation(validation_factory):
    return validation_factory(expires_in=timedelta(hours=-1))
