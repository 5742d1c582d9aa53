"""oauthlet -- OAuth2 authorization-code client for httpx.

This package drives the OAuth2 authorization-code grant and then attaches the
resulting access token to ordinary :mod:`httpx` requests, refreshing it once
when the provider answers ``401 Unauthorized``.

Typical workflow::

    from oauthlet import OAuthConfig, OAuthTransport
    import httpx

    config = OAuthConfig(
        client_id="id",
        client_secret="secret",
        auth_url="https://provider.example/o/oauth2/auth",
        token_url="https://provider.example/o/oauth2/token",
    )
    transport = OAuthTransport(config)
    print(transport.authorization_url())  # send the user here
    transport.exchange(code)              # code pasted back by the user
    with httpx.Client(transport=transport) as client:
        client.get("https://api.example/resource")

Modules:
    models: Endpoint configuration, credential pair and token response.
    authorize: Authorization redirect URL builder.
    grants: Token-endpoint exchange and refresh.
    transport: The authenticated :class:`httpx.BaseTransport`.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Example command-line program.
"""

from oauthlet.authorize import authorization_url
from oauthlet.exceptions import (
    ConfigurationError,
    MalformedEndpointError,
    MalformedResponseError,
    OAuthletError,
    ProviderRejectedError,
    TransportError,
)
from oauthlet.grants import exchange, refresh
from oauthlet.models import Credentials, OAuthConfig, TokenResponse
from oauthlet.transport import OAuthTransport, TransportState, client

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "Credentials",
    "MalformedEndpointError",
    "MalformedResponseError",
    "OAuthConfig",
    "OAuthTransport",
    "OAuthletError",
    "ProviderRejectedError",
    "TokenResponse",
    "TransportError",
    "TransportState",
    "authorization_url",
    "client",
    "exchange",
    "refresh",
]
