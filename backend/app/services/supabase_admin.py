"""Supabase Auth (GoTrue) admin client.

Only the call the retention task needs: removing an auth user once their
deletion grace period has elapsed. Requests are authenticated with the
service role key, which must never reach the browser.
"""

import logging

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class SupabaseAdminError(Exception):
    """Exception raised when the Supabase admin API rejects a call."""

    pass


class SupabaseAuthAdmin:
    """Client for the Supabase Auth admin endpoints."""

    def __init__(
        self,
        supabase_url: str,
        service_role_key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = supabase_url.rstrip("/")
        self._client = httpx.Client(
            base_url=f"{self.base_url}/auth/v1",
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
            },
            timeout=timeout,
            transport=transport,
        )

    def delete_user(self, user_id: str) -> None:
        """Delete an auth user. A user that no longer exists counts as deleted."""
        try:
            response = self._client.delete(f"/admin/users/{user_id}")
        except httpx.HTTPError as e:
            raise SupabaseAdminError(f"Failed to reach Supabase Auth: {e}") from e

        if response.status_code == 404:
            logger.info(f"Auth user {user_id} already removed")
            return
        if response.is_error:
            raise SupabaseAdminError(
                f"Supabase Auth refused to delete user {user_id}: "
                f"{response.status_code} {response.text}"
            )
        logger.info(f"Deleted auth user {user_id}")

    def close(self) -> None:
        self._client.close()


def get_auth_admin() -> SupabaseAuthAdmin | None:
    """Build an admin client, or None when Supabase is not configured."""
    if not settings.supabase_admin_enabled:
        return None
    return SupabaseAuthAdmin(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=settings.SUPABASE_ADMIN_TIMEOUT_SECONDS,
    )
