"""Exception hierarchy for oauthlet.

All exceptions inherit from :class:`OAuthletError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oauthlet.exit_codes`.
The command-line entry point in :func:`oauthlet.app.main` catches
``OAuthletError`` and exits with the appropriate code; library callers catch
the specific subclasses.

Subclass hierarchy::

    OAuthletError (exit 1)
    +-- ConfigurationError        (exit 78)
    +-- MalformedEndpointError    (exit 78)
    +-- ProviderRejectedError     (exit 3)
    |   +-- MalformedResponseError  (exit 3)
    +-- TransportError            (exit 6)
"""

from __future__ import annotations

from oauthlet.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
)


class OAuthletError(Exception):
    """Base exception for all oauthlet errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oauthlet.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(OAuthletError):
    """Raised when a request is attempted without a config or usable credentials.

    Also raised when a refresh is requested but no refresh token is held, and
    when an :class:`~oauthlet.transport.OAuthTransport` is configured to wrap
    another ``OAuthTransport``.
    """

    exit_code = EXIT_CONFIG_ERROR


class MalformedEndpointError(OAuthletError):
    """Raised at construction time for an unparsable authorization or token URL."""

    exit_code = EXIT_CONFIG_ERROR


class ProviderRejectedError(OAuthletError):
    """Raised when the token endpoint answers an exchange or refresh with non-200.

    Args:
        message: Human-readable error description.
        status_code: Numeric HTTP status returned by the provider.
        status: The provider's status line, verbatim (e.g. ``"400 Bad Request"``).
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.status = status


class MalformedResponseError(ProviderRejectedError):
    """Raised when the token endpoint returns 200 with a body that is not a token."""


class TransportError(OAuthletError):
    """Raised on network-level failures while talking to the token endpoint.

    Named after, and always chained from, :class:`httpx.TransportError`.
    """

    exit_code = EXIT_CONNECTION_ERROR
