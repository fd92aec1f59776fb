"""
Supabase Auth passthrough.

Sign-up, sign-in and sign-out are forwarded to the provider unchanged;
get_user() verifies a bearer token and returns the owner identity.
"""
import logging
import httpx
from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

from app.core.config import settings
from app.core.exceptions import AuthenticationError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    """Identity returned by the auth provider."""
    id: UUID
    email: Optional[str] = None
    access_token: Optional[str] = None


class AuthService:
    """Thin client for the Supabase GoTrue REST API."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (settings.SUPABASE_URL or "").rstrip("/")
        self.anon_key = settings.SUPABASE_ANON_KEY
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.anon_key)

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key or "",
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        **kwargs,
    ) -> httpx.Response:
        if not self.is_configured:
            raise UpstreamError("Auth provider not configured")

        try:
            async with httpx.AsyncClient(
                timeout=settings.AUTH_HTTP_TIMEOUT_SECONDS,
                transport=self.transport,
            ) as client:
                return await client.request(
                    method,
                    f"{self.base_url}/auth/v1{path}",
                    headers=self._headers(access_token),
                    **kwargs,
                )
        except httpx.HTTPError as e:
            logger.error(f"[Auth] Provider request failed: {e}")
            raise UpstreamError(f"Auth provider unavailable: {e}")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] or f"Auth provider returned {response.status_code}"
        return (
            data.get("msg")
            or data.get("error_description")
            or data.get("message")
            or data.get("error")
            or f"Auth provider returned {response.status_code}"
        )

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        response = await self._request("POST", "/signup", json={"email": email, "password": password})
        if response.status_code not in (200, 201):
            raise ValidationError(self._error_message(response))
        data = response.json()
        # Depending on email confirmation settings the user is either top-level or nested
        return data.get("user") or data

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code != 200:
            raise ValidationError(self._error_message(response))
        return response.json()

    async def sign_out(self, access_token: str) -> None:
        response = await self._request("POST", "/logout", access_token=access_token)
        if response.status_code not in (200, 204):
            raise ValidationError(self._error_message(response))

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        """Verify a bearer token. Raises AuthenticationError when the provider rejects it."""
        response = await self._request("GET", "/user", access_token=access_token)
        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid authentication")
        if response.status_code != 200:
            raise UpstreamError(self._error_message(response))
        return response.json()

    async def get_current_user(self, access_token: str) -> CurrentUser:
        data = await self.get_user(access_token)
        try:
            user_id = UUID(str(data.get("id")))
        except ValueError:
            raise AuthenticationError("Invalid authentication")
        return CurrentUser(id=user_id, email=data.get("email"), access_token=access_token)


# Singleton instance
auth_service = AuthService()
