"""Authorization redirect URL builder.

The first step of the authorization-code grant sends the resource owner to
the provider's consent page. :func:`authorization_url` builds that page's
URL from an :class:`~oauthlet.models.OAuthConfig`.
"""

from __future__ import annotations

from urllib.parse import urlencode, urlsplit, urlunsplit

from oauthlet.models import OAuthConfig, check_absolute_url


def authorization_url(config: OAuthConfig) -> str:
    """Return the URL the end-user should visit to obtain an authorization code.

    ``response_type``, ``client_id``, ``redirect_uri`` and ``scope`` are
    appended to the authorization endpoint. Any query string already present
    on the endpoint is kept in front of them.

    Args:
        config: Provider configuration.

    Returns:
        The absolute authorization URL.

    Raises:
        MalformedEndpointError: If ``config.auth_url`` cannot be parsed.
    """
    parts = urlsplit(check_absolute_url(config.auth_url, "auth_url"))
    query = urlencode(
        {
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "scope": config.scope,
        }
    )
    if parts.query:
        query = f"{parts.query}&{query}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
