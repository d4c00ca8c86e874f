"""Unit tests for the user service (mocked DB)."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from jose import jwt

from src.mp_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UsernameExistsError,
)
from src.mp_gateway.auth.jwt_handler import create_access_token, create_refresh_token
from src.mp_gateway.user.db_models import UserModel
from src.mp_gateway.user.service import UserService


def _make_user(is_active: bool = True, role: str = "user") -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.username = "jan_kowalski"
    user.email = "jan@example.pl"
    user.password_hash = "$2b$12$fakehash"
    user.role = role
    user.is_active = is_active
    return user


def _result(value) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def service() -> UserService:
    return UserService()


class TestRegister:
    async def test_duplicate_username(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))

        with pytest.raises(UsernameExistsError):
            await service.register("jan_kowalski", "new@example.pl", "Pass1word", mock_db)

    async def test_duplicate_email(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(_make_user())])

        with pytest.raises(EmailExistsError):
            await service.register("nowy", "jan@example.pl", "Pass1word", mock_db)

    async def test_new_user_gets_default_role(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(None)])

        user = await service.register(
            "nowy", "nowy@example.pl", "Pass1word", mock_db, location="Poznań"
        )

        assert user.role == "user"
        assert user.location == "Poznań"
        assert user.password_hash != "Pass1word"
        mock_db.add.assert_called_once_with(user)
        mock_db.flush.assert_awaited_once()


class TestLogin:
    async def test_unknown_user(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = AsyncMock(return_value=_result(None))

        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody", "Pass1word", mock_db)

    async def test_wrong_password(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))

        with (
            patch("src.mp_gateway.user.service.verify_password", return_value=False),
            pytest.raises(InvalidCredentialsError),
        ):
            await service.login("jan_kowalski", "WrongPass1", mock_db)

    async def test_disabled_account(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user(is_active=False)))

        with (
            patch("src.mp_gateway.user.service.verify_password", return_value=True),
            pytest.raises(AccountDisabledError),
        ):
            await service.login("jan_kowalski", "Pass1word", mock_db)

    async def test_success_returns_user_and_token_pair(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user(role="admin")))

        with patch("src.mp_gateway.user.service.verify_password", return_value=True):
            user, access, refresh = await service.login("jan_kowalski", "Pass1word", mock_db)

        assert user.username == "jan_kowalski"
        assert access != refresh
        assert jwt.get_unverified_claims(access)["role"] == "admin"


class TestRefresh:
    async def test_garbage_token(self, service: UserService, mock_db: AsyncMock) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh("not.a.real.token", mock_db)

    async def test_access_token_rejected(self, service: UserService, mock_db: AsyncMock) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_access_token(str(uuid.uuid4())), mock_db)

    async def test_non_uuid_subject(self, service: UserService, mock_db: AsyncMock) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_refresh_token("user-abc"), mock_db)

    async def test_role_reread_from_db(self, service: UserService, mock_db: AsyncMock) -> None:
        user = _make_user(role="moderator")
        mock_db.execute = AsyncMock(return_value=_result(user))

        access = await service.refresh(create_refresh_token(str(user.id)), mock_db)

        claims = jwt.get_unverified_claims(access)
        assert claims["sub"] == str(user.id)
        assert claims["role"] == "moderator"

    async def test_deleted_user(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = AsyncMock(return_value=_result(None))
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_refresh_token(str(uuid.uuid4())), mock_db)
