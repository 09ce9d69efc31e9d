"""Typer application and CLI entry point for oidclogin.

This module wires together the top-level Typer application and its two
commands:

* ``oidclogin login [K=V...]`` -- run a browser-based OIDC login and print
  the issued token.
* ``oidclogin login-help`` -- print the login usage text.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under the
data directory.

:func:`main` installs a SIGINT handler that prints "Cancelled." and exits
130. While a login is pending the login handler swaps in its own handler,
which turns Ctrl-C into :class:`~oidclogin.exceptions.LoginInterrupted`, and
restores this one afterwards.

See Also:
    :mod:`oidclogin.config`: Settings and login option resolution.
    :mod:`oidclogin.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, NoReturn, Optional

import typer

from oidclogin import __version__
from oidclogin.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from oidclogin.models import Secret

app = typer.Typer(
    name="oidclogin",
    help="Log in to a Vault-compatible auth service through your OIDC provider.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oidclogin {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~oidclogin.output.OutputManager` from CLI
    flags and, with ``--verbose``, routes module loggers to stderr at debug
    level.
    """
    from oidclogin.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
            stream=sys.stderr,
        )


@app.command("login")
def login_command(
    options: Optional[list[str]] = typer.Argument(
        None,
        metavar="[K=V]...",
        help="Login options, e.g. role=engineering port=8400. See 'oidclogin login-help'.",
    ),
    address: Optional[str] = typer.Option(
        None, "--address", help="Address of the auth service (overrides VAULT_ADDR)."
    ),
    namespace: Optional[str] = typer.Option(
        None, "--namespace", help="Namespace to log in to (overrides VAULT_NAMESPACE)."
    ),
    tls_skip_verify: bool = typer.Option(
        False, "--tls-skip-verify", help="Do not verify the service's TLS certificate."
    ),
    token_only: bool = typer.Option(
        False, "--token-only", help="Print only the token to stdout."
    ),
    no_print: bool = typer.Option(
        False, "--no-print", help="Do not print the token."
    ),
) -> None:
    """Authenticate through your OIDC provider in a browser.

    Opens the provider's authorization page, waits for the redirect on a
    local callback listener, and prints the token issued by the auth
    service. Press Ctrl-C to abandon a pending login.

    Example::

        oidclogin login role=engineering
        TOKEN=$(oidclogin login role=dev --token-only)
    """
    from oidclogin.client import AuthServiceClient
    from oidclogin.config import (
        load_global_config,
        merge_login_options,
        parse_config_args,
        resolve_settings,
        unknown_login_options,
    )
    from oidclogin.exceptions import AuthError, OIDCLoginError
    from oidclogin.login import OIDCLoginHandler
    from oidclogin.output import error, success, warning

    try:
        global_config = load_global_config()
        login_options = merge_login_options(
            global_config.login, parse_config_args(options or [])
        )
        for key in unknown_login_options(login_options):
            warning(f"Unknown login option '{key}' will be ignored.")

        settings = resolve_settings(
            cli_address=address,
            cli_namespace=namespace,
            cli_tls_skip_verify=tls_skip_verify,
            global_config=global_config,
        )
        with AuthServiceClient(settings) as client:
            secret = OIDCLoginHandler().auth(client, login_options)

        if secret is None or not secret.token:
            raise AuthError("Empty response from the auth service: no token was issued.")
    except OIDCLoginError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except KeyboardInterrupt:
        _cancel()

    success("Success! You are now authenticated.")
    if no_print:
        return
    if token_only:
        from oidclogin.output import get_output

        get_output().print_data(secret.token)
        return
    _print_secret(secret)


@app.command("login-help")
def login_help_command() -> None:
    """Show the login options and an example session."""
    from oidclogin.login import OIDCLoginHandler

    typer.echo(OIDCLoginHandler().help())


def _print_secret(secret: Secret) -> None:
    """Print the credential: JSON in ``--json`` mode, a key/value table otherwise."""
    from oidclogin.output import OutputFormat, get_output

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.format_response(secret.model_dump(mode="json"))
        return

    auth = secret.auth
    assert auth is not None
    rows = [
        ["token", auth.client_token],
        ["token_accessor", auth.accessor],
        ["token_duration", format_duration(auth.lease_duration)],
        ["token_renewable", str(auth.renewable).lower()],
        ["token_policies", _format_list(auth.token_policies)],
        ["identity_policies", _format_list(auth.identity_policies)],
        ["policies", _format_list(auth.policies)],
    ]
    for key in sorted(auth.metadata):
        rows.append([f"token_meta_{key}", auth.metadata[key]])
    output.print_table(["Key", "Value"], rows)


def format_duration(seconds: int) -> str:
    """Render a lease duration the way the service does, e.g. ``768h`` or ``1h30m``.

    A zero duration means the token never expires and renders as ``∞``.
    """
    if seconds <= 0:
        return "∞"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs:
        parts.append(f"{secs}s")
    return "".join(parts)


def _format_list(values: list[str]) -> str:
    return "[" + " ".join(values) + "]"


def _cancel() -> NoReturn:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        _cancel()

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from oidclogin.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``oidclogin`` console script.

    Installs the Ctrl-C handler, then runs the Typer app. Unhandled
    :class:`~oidclogin.exceptions.OIDCLoginError` instances cause a clean exit
    with the error's ``exit_code``. All other exceptions produce a crash log
    and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except Exception as exc:
        from oidclogin.exceptions import OIDCLoginError
        from oidclogin.output import error

        if isinstance(exc, OIDCLoginError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
