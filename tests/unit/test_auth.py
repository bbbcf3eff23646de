"""Unit tests for JWT decoding and authentication utilities."""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.schemas.auth import UserContext
from tests.fakes import ALICE_ID, create_test_token


class TestDecodeJWT:
    """Tests for decode_jwt function."""

    def test_decode_jwt_with_valid_token(self) -> None:
        token = create_test_token(user_metadata={"full_name": "Alice Liddell"})

        payload = decode_jwt(token)

        assert payload.sub == ALICE_ID
        assert payload.email == "alice@example.com"
        assert payload.aud == "authenticated"
        assert payload.user_metadata == {"full_name": "Alice Liddell"}

    def test_decode_jwt_with_expired_token(self) -> None:
        token = create_test_token(exp_offset=-3600)

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED

    def test_decode_jwt_with_foreign_key(self) -> None:
        token = create_test_token(private_key=ec.generate_private_key(ec.SECP256R1()))

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.INVALID_SIGNATURE

    def test_decode_jwt_with_wrong_audience(self) -> None:
        token = create_test_token(audience="someone-else")

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_decode_jwt_with_garbage(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt("not-a-token")

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN


class TestUserContext:
    def test_to_identity_carries_metadata(self) -> None:
        payload = decode_jwt(create_test_token(user_metadata={"avatar_url": "https://img.test/a.png"}))

        identity = payload.to_user_context().to_identity()

        assert isinstance(payload.to_user_context(), UserContext)
        assert identity.user_id == ALICE_ID
        assert identity.avatar_url == "https://img.test/a.png"
        assert identity.display_name == "alice"
