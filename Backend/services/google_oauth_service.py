"""
Google OAuth2 (authorization code flow) for sign-in.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx

from app.config import require_google_oauth, settings
from app.core.logging import get_logger

logger = get_logger()

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPES = "openid email profile"


class GoogleOAuthError(Exception):
    pass


@dataclass
class GoogleProfile:
    google_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class GoogleOAuthService:
    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        callback_url: Optional[str] = None,
        *,
        timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.GOOGLE_CLIENT_SECRET
        self.callback_url = callback_url or settings.GOOGLE_CALLBACK_URL
        self.timeout_s = timeout_s
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        require_google_oauth(self.client_id, self.client_secret)
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)

    async def exchange_code(self, code: str) -> str:
        """
        Exchange the authorization code for an access token.

        Raises:
            GoogleOAuthError: when Google rejects the code or is unreachable
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.callback_url,
                        "grant_type": "authorization_code",
                    },
                )
        except httpx.HTTPError as e:
            logger.error("google_token_exchange_network_error", error=str(e))
            raise GoogleOAuthError("token exchange failed") from e

        if response.status_code != 200:
            logger.warning(
                "google_token_exchange_rejected",
                status_code=response.status_code,
                response_preview=response.text[:300],
            )
            raise GoogleOAuthError("token exchange rejected")

        access_token = response.json().get("access_token")
        if not access_token:
            raise GoogleOAuthError("token response has no access_token")
        return access_token

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        try:
            async with self._client() as client:
                response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error("google_userinfo_network_error", error=str(e))
            raise GoogleOAuthError("userinfo request failed") from e

        if response.status_code != 200:
            logger.warning("google_userinfo_rejected", status_code=response.status_code)
            raise GoogleOAuthError("userinfo request rejected")

        data = response.json()
        sub = data.get("sub")
        if not sub:
            raise GoogleOAuthError("userinfo has no subject")
        return GoogleProfile(
            google_id=str(sub),
            email=data.get("email"),
            name=data.get("name"),
            picture=data.get("picture"),
        )

    async def authenticate(self, code: str) -> GoogleProfile:
        access_token = await self.exchange_code(code)
        return await self.fetch_profile(access_token)


def get_google_oauth_service() -> GoogleOAuthService:
    return GoogleOAuthService()
