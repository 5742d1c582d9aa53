"""Authenticated transport -- attaches OAuth2 tokens and refreshes them on 401.

:class:`OAuthTransport` is an :class:`httpx.BaseTransport` that decorates
another transport (the *underlying sender*). Plug it into an
:class:`httpx.Client` and every request gains an ``Authorization`` header::

    transport = OAuthTransport(config, credentials)
    with httpx.Client(transport=transport) as http:
        r = http.get("https://api.example/things")

When the sender answers ``401 Unauthorized`` the transport refreshes the
credentials once and retries the request once. The result of that retry is
returned whatever its status. Refreshes of one :class:`Credentials` object are
serialized on :attr:`Credentials.refresh_lock`: requests that hit a 401 while
a peer is refreshing wait for the peer and reuse its result instead of
calling the token endpoint again.

The underlying sender is ``OAuthConfig.transport`` when set, otherwise the
process-wide :func:`default_transport`.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Optional

import httpx

from oauthlet.authorize import authorization_url
from oauthlet.exceptions import ConfigurationError, OAuthletError
from oauthlet.grants import exchange as exchange_code
from oauthlet.grants import refresh as refresh_credentials
from oauthlet.models import Credentials, OAuthConfig

logger = logging.getLogger(__name__)

_default_transport: Optional[httpx.HTTPTransport] = None
_default_transport_lock = threading.Lock()


def default_transport() -> httpx.BaseTransport:
    """Return the process-wide default sender, creating it on first use."""
    global _default_transport
    with _default_transport_lock:
        if _default_transport is None:
            _default_transport = httpx.HTTPTransport()
        return _default_transport


class TransportState(str, enum.Enum):
    """Lifecycle of an :class:`OAuthTransport`."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    FAILED = "failed"


class OAuthTransport(httpx.BaseTransport):
    """Transport that makes OAuth2-authenticated requests.

    Holds the provider configuration and the credential pair as named
    fields. Credentials are refreshed in place, so the object passed in
    (or returned by :meth:`exchange`) always carries the current tokens.

    Args:
        config: Provider configuration. Requests fail with
            :class:`~oauthlet.exceptions.ConfigurationError` while it is
            ``None``.
        credentials: Previously obtained credentials. Leave unset and call
            :meth:`exchange` to run the authorization-code grant instead.
    """

    def __init__(
        self,
        config: Optional[OAuthConfig],
        credentials: Optional[Credentials] = None,
    ) -> None:
        self.config = config
        self.credentials = credentials
        self._state_lock = threading.Lock()
        self._state = (
            TransportState.AUTHENTICATED
            if credentials is not None
            else TransportState.UNAUTHENTICATED
        )
        self._refresh_error: Optional[OAuthletError] = None

    @property
    def state(self) -> TransportState:
        with self._state_lock:
            return self._state

    def _set_state(
        self, state: TransportState, error: Optional[OAuthletError] = None
    ) -> None:
        with self._state_lock:
            self._state = state
            self._refresh_error = error

    # ------------------------------------------------------------------ #
    # Authorization-code grant
    # ------------------------------------------------------------------ #

    def authorization_url(self) -> str:
        """Return the URL the end-user should visit to obtain a code."""
        return authorization_url(self._require_config())

    def exchange(self, code: str) -> Credentials:
        """Exchange *code* for credentials and install them on this transport.

        If the transport already holds a :class:`Credentials` object it is
        updated in place, so other holders see the new tokens.

        Raises:
            ConfigurationError: No config is set.
            ProviderRejectedError: The token endpoint refused the code.
            MalformedResponseError: The token endpoint reply was not a token.
            TransportError: The token endpoint could not be reached.
        """
        credentials = exchange_code(self._require_config(), code)
        if self.credentials is not None:
            self.credentials.replace(credentials)
            credentials = self.credentials
        self.set_credentials(credentials)
        return credentials

    def set_credentials(self, credentials: Optional[Credentials]) -> None:
        """Install a credential pair, or clear it with ``None``."""
        self.credentials = credentials
        if credentials is None:
            self._set_state(TransportState.UNAUTHENTICATED)
        else:
            self._set_state(TransportState.AUTHENTICATED)

    def refresh(self) -> Credentials:
        """Refresh the credentials now.

        Also the way out of :attr:`TransportState.FAILED` once the provider
        is reachable again.
        """
        config = self._require_config()
        if self.credentials is None:
            raise ConfigurationError("no Credentials supplied")
        self._refresh(config, self.credentials, self.credentials.generation, force=True)
        return self.credentials

    # ------------------------------------------------------------------ #
    # httpx.BaseTransport
    # ------------------------------------------------------------------ #

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Send *request* with an ``Authorization`` header, refreshing once on 401.

        Raises:
            ConfigurationError: No config or credentials are set, or an
                earlier refresh failed.
            ProviderRejectedError: The refresh triggered by a 401 was refused.
            MalformedResponseError: The refresh reply was not a token.
            TransportError: The token endpoint could not be reached while
                refreshing.
            httpx.TransportError: The underlying sender failed; never retried
                here.
        """
        config = self._require_config()
        credentials = self._require_credentials()

        # Buffer the body so it can be sent a second time.
        request.read()

        access_token, generation = credentials.versioned_token()
        self._authorize(request, config, access_token)
        response = config.sender.handle_request(request)
        if response.status_code != 401:
            return response

        response.close()
        logger.debug("%s %s answered 401, refreshing credentials", request.method, request.url)
        self._refresh(config, credentials, generation)

        self._authorize(request, config, credentials.access_token)
        return config.sender.handle_request(request)

    def close(self) -> None:
        """Close the configured sender. The process-wide default stays open."""
        if self.config is not None and self.config.transport is not None:
            self.config.transport.close()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _require_config(self) -> OAuthConfig:
        if self.config is None:
            raise ConfigurationError("no Config supplied")
        return self.config

    def _require_credentials(self) -> Credentials:
        with self._state_lock:
            state, error = self._state, self._refresh_error
        if self.credentials is None or state is TransportState.UNAUTHENTICATED:
            raise ConfigurationError("no Credentials supplied")
        if state is TransportState.FAILED:
            raise ConfigurationError(
                f"credential refresh failed, re-authorization required: {error}"
            ) from error
        return self.credentials

    @staticmethod
    def _authorize(request: httpx.Request, config: OAuthConfig, access_token: str) -> None:
        request.headers["Authorization"] = f"{config.token_scheme} {access_token}"

    def _refresh(
        self,
        config: OAuthConfig,
        credentials: Credentials,
        stale_generation: int,
        force: bool = False,
    ) -> None:
        """Refresh *credentials* unless a peer already replaced *stale_generation*."""
        with credentials.refresh_lock:
            if credentials.generation != stale_generation:
                logger.debug("Credentials already refreshed by a concurrent request")
                return
            error = credentials.refresh_failure()
            if error is not None and not force:
                # This generation was already rejected, possibly through
                # another transport sharing the credentials.
                self._set_state(TransportState.FAILED, error)
                raise error

            with self._state_lock:
                prior_state, prior_error = self._state, self._refresh_error
            self._set_state(TransportState.REFRESHING)
            try:
                refresh_credentials(config, credentials)
            except OAuthletError as exc:
                logger.warning("Credential refresh failed: %s", exc)
                credentials.record_refresh_failure(stale_generation, exc)
                self._set_state(TransportState.FAILED, exc)
                raise
            except BaseException:
                # Nothing was replaced; leave the transport as it was.
                self._set_state(prior_state, prior_error)
                raise
            self._set_state(TransportState.AUTHENTICATED)
            logger.debug("Credentials refreshed")


def client(
    config: OAuthConfig,
    credentials: Optional[Credentials] = None,
    **kwargs: Any,
) -> httpx.Client:
    """Build an :class:`httpx.Client` that sends through a new :class:`OAuthTransport`.

    Args:
        config: Provider configuration.
        credentials: Credential pair to attach to every request.
        **kwargs: Forwarded to :class:`httpx.Client` (``base_url``,
            ``timeout``, ``headers``...).
    """
    return httpx.Client(transport=OAuthTransport(config, credentials), **kwargs)
