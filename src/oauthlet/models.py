"""Data shapes shared across oauthlet.

Three types live here:

:class:`OAuthConfig`
    Immutable provider parameters -- client identity, endpoints, scope,
    redirect target, and the underlying request sender. Endpoint URLs are
    validated when the model is built so a misconfigured provider fails
    before the user is ever redirected.

:class:`Credentials`
    The mutable access/refresh token pair. One instance is shared by
    identity: a transport refreshing it updates the very object the caller
    holds, so the caller can persist the new tokens after a request.

:class:`TokenResponse`
    The JSON document returned by the token endpoint, decoded with pydantic
    and converted into :class:`Credentials` with an absolute expiry.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from oauthlet.exceptions import ConfigurationError, MalformedEndpointError, OAuthletError

OUT_OF_BAND = "oob"
"""Redirect URI sent when the config has no redirect target."""

OUT_OF_BAND_REDIRECTS = frozenset(
    {OUT_OF_BAND, "urn:ietf:wg:oauth:2.0:oob", "urn:ietf:wg:oauth:2.0:oob:auto"}
)
"""Redirect values that select out-of-band mode instead of naming a URL."""


def check_absolute_url(value: str, what: str) -> str:
    """Return *value* unchanged if it is an absolute URL.

    Raises:
        MalformedEndpointError: If *value* cannot be parsed or lacks a
            scheme or host.
    """
    try:
        parts = urlsplit(value)
    except ValueError as exc:
        raise MalformedEndpointError(f"{what} malformed: {value!r}: {exc}") from exc
    if not parts.scheme or not parts.netloc:
        raise MalformedEndpointError(
            f"{what} malformed: {value!r} is not an absolute URL"
        )
    return value


# --- Endpoint config ---


class OAuthConfig(BaseModel):
    """Configuration of an OAuth2 consumer.

    Instances are frozen; build a new one (or use ``model_copy(update=...)``)
    to change a value.

    Example::

        OAuthConfig(
            client_id="my-app",
            client_secret="s3cret",
            scope="https://www.googleapis.com/auth/buzz",
            auth_url="https://accounts.google.com/o/oauth2/auth",
            token_url="https://accounts.google.com/o/oauth2/token",
        )

    Raises:
        MalformedEndpointError: If ``auth_url`` or ``token_url`` is not an
            absolute URL, or ``redirect_url`` is neither an absolute URL nor
            an out-of-band value.
        ConfigurationError: If ``transport`` is itself an
            :class:`~oauthlet.transport.OAuthTransport`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    client_id: str
    client_secret: str = Field(repr=False)
    scope: str = Field(
        default="", description="Provider-defined scope string, sent verbatim"
    )
    auth_url: str = Field(description="Authorization endpoint")
    token_url: str = Field(description="Token endpoint")
    redirect_url: Optional[str] = Field(
        default=None, description="Redirect target; out-of-band mode when unset"
    )
    token_scheme: str = Field(
        default="Bearer",
        description="Scheme word of the Authorization header, e.g. Bearer or OAuth",
    )
    timeout: float = Field(
        default=30.0, description="Timeout in seconds for token endpoint calls"
    )
    transport: Optional[httpx.BaseTransport] = Field(
        default=None,
        exclude=True,
        repr=False,
        description="Underlying request sender; the process-wide default when unset",
    )

    @field_validator("auth_url")
    @classmethod
    def _check_auth_url(cls, value: str) -> str:
        return check_absolute_url(value, "auth_url")

    @field_validator("token_url")
    @classmethod
    def _check_token_url(cls, value: str) -> str:
        return check_absolute_url(value, "token_url")

    @field_validator("redirect_url")
    @classmethod
    def _check_redirect_url(cls, value: Optional[str]) -> Optional[str]:
        if not value or value in OUT_OF_BAND_REDIRECTS:
            return value
        return check_absolute_url(value, "redirect_url")

    @field_validator("transport")
    @classmethod
    def _check_transport(
        cls, value: Optional[httpx.BaseTransport]
    ) -> Optional[httpx.BaseTransport]:
        from oauthlet.transport import OAuthTransport

        if isinstance(value, OAuthTransport):
            raise ConfigurationError(
                "OAuthConfig.transport must not be an OAuthTransport"
            )
        return value

    @property
    def redirect_uri(self) -> str:
        """The redirect URI to send, ``"oob"`` when no redirect target is set."""
        return self.redirect_url or OUT_OF_BAND

    @property
    def sender(self) -> httpx.BaseTransport:
        """The underlying request sender, falling back to the process default."""
        if self.transport is not None:
            return self.transport
        from oauthlet.transport import default_transport

        return default_transport()


# --- Credential pair ---


class Credentials:
    """An end-user's access and refresh tokens.

    This is the data a caller must store to skip the authorization step
    next time. All three fields are replaced together by :meth:`replace`;
    :meth:`snapshot` reads them together, so a reader never sees the access
    token of one grant paired with the expiry of another.

    Every :meth:`replace` bumps :attr:`generation`, even when the provider
    re-issued an identical token, so a request can tell whether the pair it
    sent has since been refreshed. A refresh that failed is recorded against
    the generation it tried to replace (see :meth:`record_refresh_failure`)
    and is visible to every transport sharing this object.

    Args:
        access_token: Opaque bearer value.
        refresh_token: Opaque refresh value; empty when the provider issued none.
        expiry: Absolute UTC expiry, or ``None`` if the token never expires.
    """

    def __init__(
        self,
        access_token: str,
        refresh_token: str = "",
        expiry: datetime | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._expiry = expiry
        self._generation = 0
        self._failure: Optional[tuple[int, OAuthletError]] = None

    @property
    def access_token(self) -> str:
        with self._lock:
            return self._access_token

    @property
    def refresh_token(self) -> str:
        with self._lock:
            return self._refresh_token

    @property
    def expiry(self) -> datetime | None:
        with self._lock:
            return self._expiry

    @property
    def generation(self) -> int:
        """Number of times the pair has been replaced."""
        with self._lock:
            return self._generation

    def versioned_token(self) -> tuple[str, int]:
        """Return ``(access_token, generation)`` read under one lock."""
        with self._lock:
            return self._access_token, self._generation

    def record_refresh_failure(self, generation: int, error: OAuthletError) -> None:
        """Remember that refreshing *generation* failed with *error*."""
        with self._lock:
            self._failure = (generation, error)

    def refresh_failure(self) -> Optional[OAuthletError]:
        """The error of a failed refresh of the current generation, if any."""
        with self._lock:
            if self._failure is not None and self._failure[0] == self._generation:
                return self._failure[1]
            return None

    @property
    def refresh_lock(self) -> threading.Lock:
        """Lock serializing refreshes of this credential pair."""
        return self._refresh_lock

    @property
    def expired(self) -> bool:
        """Whether the expiry has passed. Always ``False`` for a token without expiry."""
        expiry = self.expiry
        return expiry is not None and expiry <= datetime.now(timezone.utc)

    def snapshot(self) -> tuple[str, str, datetime | None]:
        """Return ``(access_token, refresh_token, expiry)`` read under one lock."""
        with self._lock:
            return self._access_token, self._refresh_token, self._expiry

    def replace(self, other: Credentials) -> None:
        """Overwrite every field with the values held by *other*."""
        access, refresh, expiry = other.snapshot()
        with self._lock:
            self._access_token = access
            self._refresh_token = refresh
            self._expiry = expiry
            self._generation += 1
            self._failure = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-friendly dict for callers that persist tokens."""
        access, refresh, expiry = self.snapshot()
        return {
            "access_token": access,
            "refresh_token": refresh,
            "expiry": expiry.isoformat() if expiry else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credentials:
        """Rebuild credentials from :meth:`to_dict` output."""
        expiry = data.get("expiry")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or "",
            expiry=datetime.fromisoformat(expiry) if expiry else None,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Credentials):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    __hash__ = object.__hash__

    def __repr__(self) -> str:
        _, refresh, expiry = self.snapshot()
        masked = "***" if refresh else ""
        return f"Credentials(access_token='***', refresh_token={masked!r}, expiry={expiry!r})"


# --- Token endpoint response ---


class TokenResponse(BaseModel):
    """Successful token endpoint response body.

    Unknown keys (``id_token``, ``scope``, ...) are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = Field(
        default=None, description="Token lifetime in seconds"
    )
    token_type: Optional[str] = None

    def expiry(self, now: datetime) -> datetime | None:
        """Absolute expiry for a response decoded at *now*; ``None`` means never."""
        if not self.expires_in:
            return None
        return now + timedelta(seconds=self.expires_in)

    def to_credentials(
        self, now: datetime | None = None, previous: Credentials | None = None
    ) -> Credentials:
        """Convert to :class:`Credentials`.

        Args:
            now: Decode time; defaults to the current UTC wall clock.
            previous: Credentials being refreshed. Their refresh token is
                kept when this response carries none.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        refresh_token = self.refresh_token
        if not refresh_token and previous is not None:
            refresh_token = previous.refresh_token
        return Credentials(
            access_token=self.access_token,
            refresh_token=refresh_token or "",
            expiry=self.expiry(now),
        )
