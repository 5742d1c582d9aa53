"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oauthlet.exceptions.OAuthletError` subclass.
Shell wrappers can inspect the exit code of the ``oauthlet`` command to
tell a rejected token request from a network failure without parsing stderr.

Example::

    $ oauthlet --id X --secret Y --code BAD
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the token endpoint rejected the code
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required options."""

EXIT_AUTH_FAILURE = 3
"""The token endpoint rejected an exchange or refresh, or returned garbage."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CONFIG_ERROR = 78
"""The OAuth configuration or credential pair is missing or malformed (EX_CONFIG)."""
