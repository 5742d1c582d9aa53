"""Configuration helpers for building an :class:`~oauthlet.models.OAuthConfig`.

Two sources feed the config used by the ``oauthlet`` command:

* **Provider files** -- a small JSON document naming a provider's endpoints,
  scope and redirect target, loaded with :func:`load_provider`. Client
  identity never lives in this file.
* **Secret sources** -- the client secret is given as a descriptor resolved
  by :func:`resolve_secret` (``env:VAR``, ``file:/path``, ``prompt``, or the
  literal value), so it does not have to appear on the command line.

Library users construct :class:`~oauthlet.models.OAuthConfig` directly and
need neither.
"""

from __future__ import annotations

import getpass
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from oauthlet.exceptions import ConfigurationError

ENV_PREFIX = "OAUTHLET_"
"""Prefix of the environment variables read by the command-line program."""


class ProviderFile(BaseModel):
    """Schema of a provider JSON file.

    Example file::

        {
          "auth_url": "https://accounts.google.com/o/oauth2/auth",
          "token_url": "https://accounts.google.com/o/oauth2/token",
          "scope": "https://www.googleapis.com/auth/buzz",
          "token_scheme": "OAuth"
        }
    """

    model_config = ConfigDict(extra="forbid")

    auth_url: str
    token_url: str
    scope: str = ""
    redirect_url: Optional[str] = None
    token_scheme: Optional[str] = None


def load_provider(path: str | Path) -> dict[str, Any]:
    """Load a provider file into keyword arguments for ``OAuthConfig``.

    Keys left unset in the file are omitted so that ``OAuthConfig``
    defaults apply.

    Args:
        path: Path to the JSON provider file. ``~`` is expanded.

    Returns:
        A dict with ``auth_url``, ``token_url`` and any optional keys present.

    Raises:
        ConfigurationError: If the file is missing, is not valid JSON, or
            has missing or unknown keys.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"Provider file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        provider = ProviderFile.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Invalid provider file {path}: {exc}") from exc
    return provider.model_dump(exclude_none=True)


def resolve_secret(source: str) -> str:
    """Resolve a secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)
        - anything else -- used verbatim

    Args:
        source: The source descriptor string.

    Returns:
        The resolved secret.

    Raises:
        ConfigurationError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Secret file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read secret file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigurationError(
                "Cannot prompt for secret: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Client secret: ")

    return source
