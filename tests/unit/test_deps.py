"""Unit tests for FastAPI dependency injection functions."""

import pytest
from fastapi import HTTPException

from src.api.deps import extract_bearer_token, get_current_user, get_optional_user
from src.schemas.auth import UserContext
from tests.fakes import ALICE_ID, create_test_token


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("Token abc", None),
            ("Bearer", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parsing(self, header, expected) -> None:
        assert extract_bearer_token(header) == expected


class TestGetCurrentUser:
    """Tests for get_current_user dependency."""

    @pytest.mark.asyncio
    async def test_extracts_user_context(self) -> None:
        user = await get_current_user(f"Bearer {create_test_token()}")

        assert isinstance(user, UserContext)
        assert str(user.user_id) == ALICE_ID
        assert user.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_missing_header(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_header(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Basic abc")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(f"Bearer {create_test_token(exp_offset=-60)}")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"


class TestGetOptionalUser:
    @pytest.mark.asyncio
    async def test_no_header_gives_none(self) -> None:
        assert await get_optional_user(None) is None

    @pytest.mark.asyncio
    async def test_invalid_token_still_rejected(self) -> None:
        with pytest.raises(HTTPException):
            await get_optional_user("Bearer nope")
