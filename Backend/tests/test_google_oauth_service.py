"""Tests for the Google OAuth2 code exchange (httpx.MockTransport)."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from services.google_oauth_service import GoogleOAuthError, GoogleOAuthService


def _service(handler) -> GoogleOAuthService:
    return GoogleOAuthService(
        client_id="client-id",
        client_secret="client-secret",
        callback_url="http://localhost:3000/api/auth/google/callback",
        transport=httpx.MockTransport(handler),
    )


def test_authorization_url():
    service = _service(lambda r: httpx.Response(500))
    url = urlparse(service.authorization_url("state-123"))
    query = parse_qs(url.query)
    assert url.netloc == "accounts.google.com"
    assert query["redirect_uri"] == ["http://localhost:3000/api/auth/google/callback"]
    assert query["response_type"] == ["code"]
    assert query["state"] == ["state-123"]


def test_authorization_url_requires_credentials():
    service = GoogleOAuthService(client_id="", client_secret="")
    assert not service.is_configured
    with pytest.raises(RuntimeError, match="GOOGLE_CLIENT_ID"):
        service.authorization_url("state")


@pytest.mark.asyncio
async def test_authenticate_success():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            form = parse_qs(request.content.decode())
            assert form["code"] == ["the-code"]
            assert form["grant_type"] == ["authorization_code"]
            return httpx.Response(200, json={"access_token": "google-access", "expires_in": 3599})
        assert request.headers["Authorization"] == "Bearer google-access"
        return httpx.Response(
            200,
            json={"sub": "1098", "email": "ayse@example.com", "name": "Ayse", "picture": "https://p/1.png"},
        )

    profile = await _service(handler).authenticate("the-code")
    assert profile.google_id == "1098"
    assert profile.email == "ayse@example.com"
    assert profile.picture == "https://p/1.png"


@pytest.mark.asyncio
async def test_exchange_rejected():
    service = _service(lambda r: httpx.Response(400, json={"error": "invalid_grant"}))
    with pytest.raises(GoogleOAuthError):
        await service.exchange_code("bad-code")


@pytest.mark.asyncio
async def test_exchange_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(GoogleOAuthError):
        await _service(handler).exchange_code("code")


@pytest.mark.asyncio
async def test_profile_without_subject():
    service = _service(lambda r: httpx.Response(200, json={"email": "x@example.com"}))
    with pytest.raises(GoogleOAuthError):
        await service.fetch_profile("token")
