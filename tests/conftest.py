"""Shared test fixtures for oauthlet.

The :class:`FakeProvider` plays both sides of an OAuth2 deployment behind a
single :class:`httpx.MockTransport`: a token endpoint with a scripted reply
and a protected resource that only accepts the currently valid access
token. Every request is recorded so tests can count round trips.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from oauthlet.models import Credentials, OAuthConfig
from oauthlet.output import reset_output


AUTH_URL = "https://provider.example.com/o/oauth2/auth"
TOKEN_URL = "https://provider.example.com/o/oauth2/token"
API_URL = "https://api.example.com/v1/me"


def form_of(request: httpx.Request) -> dict[str, str]:
    """Decode a URL-encoded request body into a flat dict."""
    parsed = parse_qs(request.content.decode("ascii"), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


class FakeProvider:
    """Scripted token endpoint plus a bearer-protected resource.

    Attributes:
        token_status: Status code the token endpoint answers with.
        token_body: JSON body (or raw string) of the token endpoint reply.
        valid_token: The only access token the resource accepts.
        on_token: Optional hook run before the token endpoint replies.
        on_api: Optional hook run before the resource replies.
    """

    def __init__(self) -> None:
        self.token_status = 200
        self.token_body: Any = {
            "access_token": "fresh-token",
            "refresh_token": "fresh-refresh",
            "expires_in": 3600,
        }
        self.valid_token = "fresh-token"
        self.scheme = "Bearer"
        self.on_token: Optional[Callable[[httpx.Request], None]] = None
        self.on_api: Optional[Callable[[httpx.Request], None]] = None
        self.token_requests: list[httpx.Request] = []
        self.api_requests: list[httpx.Request] = []
        self._lock = threading.Lock()
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        # The transport re-sends the same Request object on retry, so keep
        # a copy of what was on the wire at this moment.
        sent = httpx.Request(
            request.method,
            request.url,
            headers=request.headers.copy(),
            content=request.content,
            extensions=request.extensions,
        )
        if str(request.url) == TOKEN_URL:
            with self._lock:
                self.token_requests.append(sent)
            if self.on_token is not None:
                self.on_token(request)
            if isinstance(self.token_body, str):
                return httpx.Response(self.token_status, text=self.token_body)
            return httpx.Response(self.token_status, json=self.token_body)

        with self._lock:
            self.api_requests.append(sent)
        if self.on_api is not None:
            self.on_api(request)
        if request.headers.get("Authorization") == f"{self.scheme} {self.valid_token}":
            return httpx.Response(200, json={"ok": True, "method": request.method})
        return httpx.Response(401, json={"error": "invalid_token"})


@pytest.fixture
def provider() -> FakeProvider:
    """A fresh fake provider."""
    return FakeProvider()


@pytest.fixture
def config(provider: FakeProvider) -> OAuthConfig:
    """An OAuthConfig wired to the fake provider's transport."""
    return OAuthConfig(
        client_id="client-123",
        client_secret="s3cret",
        scope="read write",
        auth_url=AUTH_URL,
        token_url=TOKEN_URL,
        redirect_url="https://app.example.com/callback",
        transport=provider.transport,
    )


@pytest.fixture
def stale_credentials() -> Credentials:
    """Credentials whose access token the fake provider no longer accepts."""
    return Credentials(access_token="stale-token", refresh_token="old-refresh")


@pytest.fixture(autouse=True)
def _reset_output_and_logging():
    """Reset the global OutputManager and the ``oauthlet`` logger after every test.

    The CLI attaches a handler bound to the stderr stream CliRunner swaps
    in; that stream is closed once the test ends.
    """
    yield
    reset_output()
    logger = logging.getLogger("oauthlet")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
