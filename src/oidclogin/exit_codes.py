"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oidclogin.exceptions.OIDCLoginError` subclass.
Shell wrappers can inspect the exit code to tell a rejected role from a
busy callback port without parsing stderr.

Example::

    $ oidclogin login role=engineering
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the role could not be authorized
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or malformed options."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed (role rejected, login refused by the provider)."""

EXIT_SERVER_ERROR = 5
"""The auth service answered with an error response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (service unreachable, callback port unavailable)."""

EXIT_INTERRUPTED = 130
"""The user interrupted the login (Ctrl-C)."""
