"""
Unit tests for the deferred notification handlers.

Handlers re-read the user when they run, issue a token, commit it and send
one email.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from grantflow.core.auth import ROLE_PROCESS_OWNER
from grantflow.modules.validations.handlers import (
    handle_user_email_change,
    handle_user_forgot_password,
    handle_user_registered,
    handle_user_validated,
)
from grantflow.modules.validations.messages import (
    UserEmailChangeMessage,
    UserForgotPasswordMessage,
    UserRegisteredMessage,
    UserValidatedMessage,
)
from grantflow.modules.validations.models import ValidationType

URL_TEMPLATE = "https://app.example.org/validate/{{type}}/{{id}}/{{token}}"
HANDLERS = "grantflow.modules.validations.handlers"


@pytest.fixture
def session_maker(mock_db):
    @asynccontextmanager
    async def _session():
        yield mock_db

    return _session


class TestHandleUserRegistered:
    """Tests for handle_user_registered."""

    @pytest.mark.asyncio
    async def test_issues_token_commits_then_sends(
        self, mock_db, session_maker, user_factory, valid_validation
    ):
        user = user_factory(is_validated=False)
        order = []
        mock_db.commit.side_effect = lambda: order.append("commit")

        async def send(to_email, username, url):
            order.append("send")
            assert to_email == user.email
            assert url == (
                f"https://app.example.org/validate/account/{valid_validation.id}/plain"
            )
            return "msg-1"

        with (
            patch("grantflow.modules.validations.handlers.async_session_maker", session_maker),
            patch("grantflow.modules.validations.handlers.UserRepository") as mock_users,
            patch("grantflow.modules.validations.handlers.service") as mock_service,
            patch("grantflow.modules.validations.handlers.send_account_validation", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=user)
            mock_service.issue_validation = AsyncMock(return_value=(valid_validation, "plain"))

            await handle_user_registered(
                UserRegisteredMessage(user_id=user.id, validation_url=URL_TEMPLATE)
            )

            mock_service.issue_validation.assert_awaited_once_with(
                mock_db, user, ValidationType.ACCOUNT, None
            )
            assert order == ["commit", "send"]

    @pytest.mark.asyncio
    async def test_skips_already_validated_user(self, session_maker, user_factory):
        """The user validated between dispatch and handling."""
        user = user_factory(is_validated=True)
        send = AsyncMock()

        with (
            patch("grantflow.modules.validations.handlers.async_session_maker", session_maker),
            patch("grantflow.modules.validations.handlers.UserRepository") as mock_users,
            patch("grantflow.modules.validations.handlers.service") as mock_service,
            patch("grantflow.modules.validations.handlers.send_account_validation", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=user)
            mock_service.issue_validation = AsyncMock()

            await handle_user_registered(
                UserRegisteredMessage(user_id=user.id, validation_url=URL_TEMPLATE)
            )

            mock_service.issue_validation.assert_not_called()
            send.assert_not_called()

    @pytest.mark.asyncio
    async def test_skips_missing_user(self, session_maker):
        send = AsyncMock()
        with (
            patch("grantflow.modules.validations.handlers.async_session_maker", session_maker),
            patch("grantflow.modules.validations.handlers.UserRepository") as mock_users,
            patch("grantflow.modules.validations.handlers.send_account_validation", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=None)

            await handle_user_registered(
                UserRegisteredMessage(user_id=uuid4(), validation_url=URL_TEMPLATE)
            )

            send.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_send_keeps_token(
        self, mock_db, session_maker, user_factory, valid_validation
    ):
        """No retry and no rollback: the committed token stays valid."""
        user = user_factory(is_validated=False)
        send = AsyncMock(return_value=None)

        with (
            patch("grantflow.modules.validations.handlers.async_session_maker", session_maker),
            patch("grantflow.modules.validations.handlers.UserRepository") as mock_users,
            patch("grantflow.modules.validations.handlers.service") as mock_service,
            patch("grantflow.modules.validations.handlers.send_account_validation", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=user)
            mock_service.issue_validation = AsyncMock(return_value=(valid_validation, "plain"))

            await handle_user_registered(
                UserRegisteredMessage(user_id=user.id, validation_url=URL_TEMPLATE)
            )

            send.assert_awaited_once()
            mock_db.commit.assert_awaited_once()
            mock_db.rollback.assert_not_called()


class TestHandleUserEmailChange:
    @pytest.mark.asyncio
    async def test_link_goes_to_new_address(
        self, mock_db, session_maker, user_factory, valid_validation
    ):
        user = user_factory()
        send = AsyncMock(return_value="msg-2")

        with (
            patch("grantflow.modules.validations.handlers.async_session_maker", session_maker),
            patch("grantflow.modules.validations.handlers.UserRepository") as mock_users,
            patch("grantflow.modules.validations.handlers.service") as mock_service,
            patch("grantflow.modules.validations.handlers.send_email_change", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=user)
            mock_service.issue_validation = AsyncMock(return_value=(valid_validation, "plain"))

            await handle_user_email_change(
                UserEmailChangeMessage(
                    user_id=user.id, new_email="new@example.org", validation_url=URL_TEMPLATE
                )
            )

            mock_service.issue_validation.assert_awaited_once_with(
                mock_db, user, ValidationType.CHANGE_EMAIL, {"email": "new@example.org"}
            )
            assert send.call_args.args[0] == "new@example.org"


class TestHandleUserValidated:
    @pytest.mark.asyncio
    async def test_notifies_process_owners(self, session_maker, user_factory):
        user = user_factory(is_validated=True)
        owners = [
            user_factory(email="po1@example.org", role_names=[ROLE_PROCESS_OWNER]),
            user_factory(email="po2@example.org", role_names=[ROLE_PROCESS_OWNER]),
        ]
        send = AsyncMock(return_value="msg-3")

        with (
            patch("grantflow.modules.validations.handlers.async_session_maker", session_maker),
            patch("grantflow.modules.validations.handlers.UserRepository") as mock_users,
            patch("grantflow.modules.validations.handlers.send_user_validated_notice", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=user)
            mock_users.get_validated_process_owners = AsyncMock(return_value=owners)

            await handle_user_validated(UserValidatedMessage(user_id=user.id))

            send.assert_awaited_once_with(
                ["po1@example.org", "po2@example.org"], user.username, user.email
            )


class TestHandleUserForgotPassword:
    """Tests for handle_user_forgot_password."""

    @pytest.mark.asyncio
    async def test_issues_reset_token_commits_then_sends(
        self, mock_db, session_maker, user_factory, valid_validation
    ):
        user = user_factory()
        order = []
        mock_db.commit.side_effect = lambda: order.append("commit")

        async def send(to_email, username, url):
            order.append("send")
            assert to_email == user.email
            assert username == user.username
            assert url == (
                f"https://app.example.org/validate/reset-password/{valid_validation.id}/plain"
            )
            return "msg-4"

        with (
            patch(f"{HANDLERS}.async_session_maker", session_maker),
            patch(f"{HANDLERS}.UserRepository") as mock_users,
            patch(f"{HANDLERS}.service") as mock_service,
            patch(f"{HANDLERS}.send_password_reset", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=user)
            mock_service.issue_validation = AsyncMock(return_value=(valid_validation, "plain"))

            await handle_user_forgot_password(
                UserForgotPasswordMessage(user_id=user.id, validation_url=URL_TEMPLATE)
            )

            mock_service.issue_validation.assert_awaited_once_with(
                mock_db, user, ValidationType.RESET_PASSWORD, None
            )
            assert order == ["commit", "send"]


def _registered(user_id):
    return UserRegisteredMessage(user_id=user_id, validation_url=URL_TEMPLATE)


def _forgot_password(user_id):
    return UserForgotPasswordMessage(user_id=user_id, validation_url=URL_TEMPLATE)


def _email_change(user_id):
    return UserEmailChangeMessage(
        user_id=user_id, new_email="new@example.org", validation_url=URL_TEMPLATE
    )


class TestUserChangedAfterDispatch:
    """The user is re-read when the message is handled, not when it was queued."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "handler, build_message, sender",
        [
            (handle_user_registered, _registered, "send_account_validation"),
            (handle_user_forgot_password, _forgot_password, "send_password_reset"),
            (handle_user_email_change, _email_change, "send_email_change"),
        ],
    )
    @pytest.mark.parametrize(
        "user_state",
        [
            {"deleted_at": datetime(2026, 1, 1, tzinfo=UTC)},
            {"is_active": False},
        ],
    )
    async def test_unavailable_user_is_skipped(
        self, mock_db, session_maker, user_factory, handler, build_message, sender, user_state
    ):
        user = user_factory(is_validated=False, **user_state)
        send = AsyncMock()

        with (
            patch(f"{HANDLERS}.async_session_maker", session_maker),
            patch(f"{HANDLERS}.UserRepository") as mock_users,
            patch(f"{HANDLERS}.service") as mock_service,
            patch(f"{HANDLERS}.{sender}", send),
        ):
            mock_users.get_by_id = AsyncMock(return_value=user)
            mock_service.issue_validation = AsyncMock()

            await handler(build_message(user.id))

            mock_service.issue_validation.assert_not_called()
            mock_db.commit.assert_not_called()
            send.assert_not_called()
