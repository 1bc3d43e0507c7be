"""Tests for the Supabase Auth admin client."""

from unittest.mock import patch

import httpx
import pytest

from app.services.supabase_admin import SupabaseAdminError, SupabaseAuthAdmin, get_auth_admin


def _admin(handler) -> SupabaseAuthAdmin:
    return SupabaseAuthAdmin(
        "https://project.supabase.co/",
        "service-role-key",
        transport=httpx.MockTransport(handler),
    )


class TestDeleteUser:
    def test_sends_authenticated_delete(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _admin(handler).delete_user("0b4c3a9e-user")

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "DELETE"
        assert str(request.url) == "https://project.supabase.co/auth/v1/admin/users/0b4c3a9e-user"
        assert request.headers["apikey"] == "service-role-key"
        assert request.headers["Authorization"] == "Bearer service-role-key"

    def test_missing_user_counts_as_deleted(self):
        admin = _admin(lambda request: httpx.Response(404, json={"msg": "User not found"}))

        admin.delete_user("gone")

    def test_error_status_raises(self):
        admin = _admin(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(SupabaseAdminError, match="500 boom"):
            admin.delete_user("u1")

    def test_network_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SupabaseAdminError, match="Failed to reach Supabase Auth"):
            _admin(handler).delete_user("u1")


class TestGetAuthAdmin:
    def test_none_when_not_configured(self):
        assert get_auth_admin() is None

    @patch("app.services.supabase_admin.settings")
    def test_built_from_settings(self, mock_settings):
        mock_settings.supabase_admin_enabled = True
        mock_settings.SUPABASE_URL = "https://project.supabase.co"
        mock_settings.SUPABASE_SERVICE_ROLE_KEY = "key"
        mock_settings.SUPABASE_ADMIN_TIMEOUT_SECONDS = 5.0

        admin = get_auth_admin()

        assert isinstance(admin, SupabaseAuthAdmin)
        assert admin.base_url == "https://project.supabase.co"
        admin.close()
