"""Exception hierarchy for oidclogin.

All exceptions inherit from :class:`OIDCLoginError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oidclogin.exit_codes`.
The top-level error handler in :func:`oidclogin.app.main` catches
``OIDCLoginError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    OIDCLoginError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- RemoteServiceError  (exit 5)
    +-- ConnectionError_    (exit 6)
    |   +-- ListenerError   (exit 6)
    +-- BrowserLaunchError  (exit 1)
    +-- ConfigError         (exit 1)
    +-- LoginInterrupted    (exit 130)
"""

from __future__ import annotations

from typing import Optional

from oidclogin.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
)


class OIDCLoginError(Exception):
    """Base exception for all oidclogin errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oidclogin.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OIDCLoginError):
    """Raised for invalid CLI arguments or malformed ``K=V`` login options."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(OIDCLoginError):
    """Raised when the auth service will not start a login for the requested role."""

    exit_code = EXIT_AUTH_FAILURE


class RemoteServiceError(OIDCLoginError):
    """Raised when the auth service answers a request with an error status.

    The message mirrors the service's own error rendering so that the
    ``Errors: * <text>`` block can later be split by
    :func:`~oidclogin.login.classifier.parse_error`::

        Error making API request.

        URL: PUT https://vault.example.com/v1/auth/oidc/oidc/auth_url
        Code: 400. Errors:

        * login failed: invalid state

    Args:
        method: HTTP method of the failed request.
        url: Full request URL.
        status_code: HTTP status returned by the service.
        errors: Error strings from the ``errors`` array of the body.
        raw_message: Body text, used when the body was not JSON.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(
        self,
        method: str,
        url: str,
        status_code: int,
        errors: Optional[list[str]] = None,
        raw_message: str = "",
    ):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.errors = list(errors or [])
        self.raw_message = raw_message
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [
            "Error making API request.",
            "",
            f"URL: {self.method} {self.url}",
        ]
        if self.errors:
            lines.append(f"Code: {self.status_code}. Errors:")
            lines.append("")
            lines.extend(f"* {err}" for err in self.errors)
        else:
            lines.append(f"Code: {self.status_code}. Raw Message:")
            lines.append("")
            lines.append(self.raw_message)
        return "\n".join(lines)


class ConnectionError_(OIDCLoginError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ListenerError(ConnectionError_):
    """Raised when the local callback listener cannot be bound (e.g. port in use)."""


class BrowserLaunchError(OIDCLoginError):
    """Raised when the platform browser command cannot be started."""


class ConfigError(OIDCLoginError):
    """Raised for configuration problems (invalid config file, bad port values)."""

    exit_code = EXIT_GENERIC_FAILURE


class LoginInterrupted(OIDCLoginError):
    """Raised when the user interrupts a pending login with Ctrl-C."""

    exit_code = EXIT_INTERRUPTED

    def __init__(self, message: str = "Interrupted", exit_code: int | None = None):
        super().__init__(message, exit_code)
