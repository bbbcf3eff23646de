"""Unit tests for Supabase client factories."""

from unittest.mock import MagicMock, patch

from src.core.supabase import create_auth_client


class TestCreateAuthClient:
    """Tests for create_auth_client."""

    @patch("src.core.supabase.create_client")
    def test_uses_implicit_flow(self, mock_create_client: MagicMock, test_settings) -> None:
        create_auth_client()

        options = mock_create_client.call_args.kwargs["options"]
        assert options.flow_type == "implicit"
        assert options.persist_session is False
        assert options.auto_refresh_token is False

    @patch("src.core.supabase.create_client")
    def test_each_call_gets_its_own_storage(self, mock_create_client: MagicMock, test_settings) -> None:
        create_auth_client()
        create_auth_client()

        first, second = (call.kwargs["options"].storage for call in mock_create_client.call_args_list)
        assert first is not second
