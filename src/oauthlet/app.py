"""The ``oauthlet`` command -- walk through the authorization-code grant by hand.

Run it three times:

1. With only ``--id`` and ``--secret``: prints the authorization URL. Visit it
   and grant access; the provider shows a code (out-of-band mode).
2. With ``--code``: exchanges the code and prints the issued tokens.
3. With ``--token`` (and ideally ``--refresh-token``): fetches ``URL`` with
   the token attached and copies the body to stdout. An expired token is
   refreshed on the 401 and the new token is suggested on stderr.

Every option can also come from an ``OAUTHLET_*`` environment variable, and
``--provider`` reads endpoints from a JSON file (see
:class:`oauthlet.config.ProviderFile`). Flags win over the provider file,
which wins over the built-in Google defaults.
"""

from __future__ import annotations

import json
import signal
import sys
from typing import Any, Optional

import httpx
import typer

from oauthlet import __version__
from oauthlet.config import ENV_PREFIX, load_provider, resolve_secret
from oauthlet.exceptions import OAuthletError
from oauthlet.exit_codes import EXIT_CONNECTION_ERROR, EXIT_INVALID_USAGE
from oauthlet.models import Credentials, OAuthConfig
from oauthlet.output import OutputManager, get_output, set_output
from oauthlet.transport import OAuthTransport

DEFAULT_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URL = "https://accounts.google.com/o/oauth2/token"
DEFAULT_SCOPE = "https://www.googleapis.com/auth/userinfo.profile"
DEFAULT_RESOURCE = "https://www.googleapis.com/oauth2/v1/userinfo?alt=json"

USAGE_MSG = """\
You must specify at least --id and --secret.
To obtain these details, register an OAuth 2 client with your provider
(for Google: the "Credentials" page of https://console.cloud.google.com/apis/).
"""

app = typer.Typer(
    name="oauthlet",
    help="Obtain an OAuth2 access token and make an authenticated request.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oauthlet {__version__}")
        raise typer.Exit()


def _env(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


@app.command()
def run(
    url: str = typer.Argument(
        DEFAULT_RESOURCE, help="Resource to fetch once a token is available."
    ),
    client_id: Optional[str] = typer.Option(
        None, "--id", envvar=_env("CLIENT_ID"), help="Client ID."
    ),
    secret: Optional[str] = typer.Option(
        None,
        "--secret",
        envvar=_env("CLIENT_SECRET"),
        help="Client secret, or a source: env:VAR, file:PATH, prompt.",
    ),
    code: Optional[str] = typer.Option(None, "--code", help="Authorization code."),
    token: Optional[str] = typer.Option(
        None, "--token", envvar=_env("ACCESS_TOKEN"), help="Access token."
    ),
    refresh_token: Optional[str] = typer.Option(
        None, "--refresh-token", envvar=_env("REFRESH_TOKEN"), help="Refresh token."
    ),
    provider: Optional[str] = typer.Option(
        None, "--provider", envvar=_env("PROVIDER"), help="Provider JSON file."
    ),
    auth_url: Optional[str] = typer.Option(
        None, "--auth-url", help="Authorization endpoint."
    ),
    token_url: Optional[str] = typer.Option(
        None, "--token-url", help="Token endpoint."
    ),
    scope: Optional[str] = typer.Option(None, "--scope", help="Scope to request."),
    redirect_url: Optional[str] = typer.Option(
        None, "--redirect-url", help="Redirect target; out-of-band when unset."
    ),
    scheme: Optional[str] = typer.Option(
        None, "--scheme", help="Authorization header scheme (Bearer, OAuth...)."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log token and retry activity to stderr."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Authorize, exchange a code, or fetch URL with an access token."""
    output = OutputManager(no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    output.configure_logging()

    if not client_id or not secret:
        output.error("missing client credentials")
        output.info(USAGE_MSG)
        raise typer.Exit(EXIT_INVALID_USAGE)

    try:
        settings: dict[str, Any] = {
            "auth_url": DEFAULT_AUTH_URL,
            "token_url": DEFAULT_TOKEN_URL,
            "scope": DEFAULT_SCOPE,
        }
        if provider:
            settings.update(load_provider(provider))
        overrides = {
            "auth_url": auth_url,
            "token_url": token_url,
            "scope": scope,
            "redirect_url": redirect_url,
            "token_scheme": scheme,
        }
        settings.update({k: v for k, v in overrides.items() if v is not None})
        config = OAuthConfig(
            client_id=client_id,
            client_secret=resolve_secret(secret),
            **settings,
        )

        # Step one: get an authorization code from the provider.
        if not code and not token:
            output.info("Visit this URL to get a code, then run again with --code=YOUR_CODE")
            output.print_data(OAuthTransport(config).authorization_url())
            return

        # Step two: exchange the authorization code for tokens.
        if not token:
            credentials = OAuthTransport(config).exchange(code or "")
            output.print_data(json.dumps(credentials.to_dict(), indent=2))
            output.suggest(_rerun_hint(credentials))
            return

        # Step three: make the request with the token.
        credentials = Credentials(access_token=token, refresh_token=refresh_token or "")
        _fetch(url, config, credentials)
    except OAuthletError as exc:
        output.error(str(exc))
        raise typer.Exit(exc.exit_code)
    except httpx.TransportError as exc:
        output.error(f"Request failed: {exc}")
        raise typer.Exit(EXIT_CONNECTION_ERROR)


def _fetch(url: str, config: OAuthConfig, credentials: Credentials) -> None:
    """GET *url* through an :class:`OAuthTransport` and copy the body to stdout."""
    output = get_output()
    original = credentials.access_token
    with httpx.Client(transport=OAuthTransport(config, credentials)) as http:
        response = http.get(url)
    output.print_data(response.text)
    if response.status_code >= 400:
        output.warning(f"{url} answered {response.status_code} {response.reason_phrase}")
    if credentials.access_token != original:
        output.suggest("Token was refreshed. " + _rerun_hint(credentials))


def _rerun_hint(credentials: Credentials) -> str:
    hint = f"Now run again with --token={credentials.access_token}"
    if credentials.refresh_token:
        hint += f" --refresh-token={credentials.refresh_token}"
    return hint


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """Console-script entry point for ``oauthlet``."""
    _setup_signal_handlers()
    app()
