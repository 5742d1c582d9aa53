"""Token endpoint grants: authorization-code exchange and refresh.

Both grants POST a URL-encoded form to ``OAuthConfig.token_url`` through the
config's underlying sender and decode the JSON reply into
:class:`~oauthlet.models.Credentials`. The request is handed straight to
the sender (an :class:`httpx.BaseTransport`) instead of going through an
:class:`httpx.Client`, so a shared sender is never closed by a token call.

Nothing here mutates credentials unless the provider answered 200 with a
valid token document.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from oauthlet.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    ProviderRejectedError,
    TransportError,
)
from oauthlet.models import Credentials, OAuthConfig, TokenResponse

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def exchange(config: OAuthConfig, code: str) -> Credentials:
    """Exchange an authorization code for access credentials.

    Args:
        config: Provider configuration.
        code: The authorization code the user brought back from the
            consent page.

    Returns:
        Freshly issued :class:`~oauthlet.models.Credentials`.

    Raises:
        ProviderRejectedError: The token endpoint answered with a non-200 status.
        MalformedResponseError: The 200 body was not a token document.
        TransportError: The token endpoint could not be reached.
    """
    form = {
        "grant_type": "authorization_code",
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "redirect_uri": config.redirect_uri,
        "scope": config.scope,
        "code": code,
    }
    return _request_token(config, form)


def refresh(config: OAuthConfig, credentials: Credentials) -> Credentials:
    """Refresh *credentials* in place using their refresh token.

    The provider may omit ``refresh_token`` from the reply; the existing
    refresh token is then kept. On any failure *credentials* are left
    exactly as they were.

    Args:
        config: Provider configuration.
        credentials: The credential pair to refresh.

    Returns:
        *credentials*, updated.

    Raises:
        ConfigurationError: *credentials* hold no refresh token.
        ProviderRejectedError: The token endpoint answered with a non-200 status.
        MalformedResponseError: The 200 body was not a token document.
        TransportError: The token endpoint could not be reached.
    """
    refresh_token = credentials.refresh_token
    if not refresh_token:
        raise ConfigurationError("No refresh token available")

    form = {
        "grant_type": "refresh_token",
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "refresh_token": refresh_token,
    }
    fresh = _request_token(config, form, previous=credentials)
    credentials.replace(fresh)
    return credentials


def _request_token(
    config: OAuthConfig,
    form: dict[str, str],
    previous: Credentials | None = None,
) -> Credentials:
    """POST *form* to the token endpoint and decode the reply."""
    request = httpx.Request(
        "POST",
        config.token_url,
        headers={"Content-Type": FORM_CONTENT_TYPE, "Accept": "application/json"},
        data=form,
        extensions={"timeout": httpx.Timeout(config.timeout).as_dict()},
    )
    logger.debug("POST %s grant_type=%s", config.token_url, form["grant_type"])

    response: httpx.Response | None = None
    try:
        response = config.sender.handle_request(request)
        try:
            response.read()
        finally:
            response.close()
    except httpx.TransportError as exc:
        raise TransportError(f"Token request to {config.token_url} failed: {exc}") from exc
    except httpx.DecodingError as exc:
        # Body does not match its Content-Encoding. A non-200 reply is
        # rejected on its status below, its body is never looked at.
        if response is None or response.status_code == 200:
            raise MalformedResponseError(
                f"Token endpoint returned an undecodable body: {exc}",
                status_code=response.status_code if response is not None else None,
                status=_status_line(response) if response is not None else None,
            ) from exc

    status = _status_line(response)
    if response.status_code != 200:
        logger.debug("Token endpoint answered %s", status)
        raise ProviderRejectedError(
            f"invalid response: {status}",
            status_code=response.status_code,
            status=status,
        )

    try:
        token = TokenResponse.model_validate(response.json())
    except ValueError as exc:
        raise MalformedResponseError(
            f"Token endpoint returned an undecodable body: {exc}",
            status_code=response.status_code,
            status=status,
        ) from exc

    return token.to_credentials(datetime.now(timezone.utc), previous=previous)


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()
