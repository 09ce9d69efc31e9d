"""Browser-based OIDC login.

:class:`OIDCLoginHandler` drives one login from start to finish:

1. Resolve the ``K=V`` options into a :class:`~oidclogin.models.LoginConfig`.
2. Ask the auth service for the provider's authorization URL.
3. Bind a :class:`~oidclogin.login.callback.CallbackServer` on the local
   port the provider will redirect to.
4. Print the URL and open the user's browser; a launch failure only warns.
5. Wait for the callback exchange or an interrupt, whichever comes first.

The listener is always closed before :meth:`OIDCLoginHandler.auth` returns
or raises.
"""

from __future__ import annotations

import logging
import queue
import signal
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from oidclogin import output
from oidclogin.client import AuthServiceClient
from oidclogin.exceptions import BrowserLaunchError, LoginInterrupted
from oidclogin.login.auth_url import fetch_auth_url
from oidclogin.login.browser import open_url
from oidclogin.login.callback import CallbackServer, LoginOutcome, OIDCCallback
from oidclogin.models import CALLBACK_PATH, LoginConfig, Secret

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


class OIDCLoginHandler:
    """Performs an interactive OIDC login through the user's browser."""

    def auth(
        self,
        client: AuthServiceClient,
        config: Mapping[str, str],
        interrupt: Optional[threading.Event] = None,
    ) -> Optional[Secret]:
        """Log in and return the credential issued by the auth service.

        Args:
            client: Open client for the auth service.
            config: Login options keyed by the names in
                :data:`~oidclogin.models.LOGIN_OPTIONS`.
            interrupt: Event that cancels the login when set. When omitted,
                a fresh event is used; on the main thread Ctrl-C sets it.

        Returns:
            The credential from the callback exchange, or ``None`` if the
            service answered the exchange with an empty body.

        Raises:
            InvalidUsageError: If a port option is malformed.
            AuthError: If the service returns no authorization URL.
            RemoteServiceError: If the service rejects a request.
            ListenerError: If the callback port cannot be bound.
            LoginInterrupted: If the login is interrupted before it resolves.
        """
        interrupted = interrupt if interrupt is not None else threading.Event()
        with _sigint_sets(interrupted):
            return self._login(client, LoginConfig.from_mapping(config), interrupted)

    def _login(
        self,
        client: AuthServiceClient,
        config: LoginConfig,
        interrupted: threading.Event,
    ) -> Optional[Secret]:
        auth_url = fetch_auth_url(
            client,
            config.role,
            config.mount,
            config.callback_port,
            config.callback_method,
            config.callback_host,
        )
        _raise_if_interrupted(interrupted, "fetching the authorization URL")

        resolution: queue.Queue[LoginOutcome] = queue.Queue(maxsize=1)
        routes = {CALLBACK_PATH: OIDCCallback(client, config.mount, resolution)}
        server = CallbackServer(config.listen_address, int(config.port), routes, resolution)
        try:
            _raise_if_interrupted(interrupted, "binding the listener")
            output.info(
                f"Complete the login via your OIDC provider. Launching browser to:\n\n    {auth_url}\n"
            )
            try:
                open_url(auth_url)
            except BrowserLaunchError as exc:
                output.warning(
                    f"Error attempting to automatically open browser: '{exc}'.\n"
                    "Please visit the authorization URL manually."
                )
            server.serve_in_background()
            outcome = _wait_for_outcome(resolution, interrupted)
        finally:
            server.close()

        if outcome.error is not None:
            raise outcome.error
        return outcome.credential

    def help(self) -> str:
        return HELP_TEXT.strip()


def auth(
    client: AuthServiceClient,
    config: Mapping[str, str],
    interrupt: Optional[threading.Event] = None,
) -> Optional[Secret]:
    """Shorthand for ``OIDCLoginHandler().auth(...)``."""
    return OIDCLoginHandler().auth(client, config, interrupt=interrupt)


def _raise_if_interrupted(interrupted: threading.Event, stage: str) -> None:
    if interrupted.is_set():
        logger.debug("Login interrupted after %s", stage)
        raise LoginInterrupted()


def _wait_for_outcome(resolution: queue.Queue, interrupted: threading.Event) -> LoginOutcome:
    while True:
        _raise_if_interrupted(interrupted, "waiting for the callback")
        try:
            return resolution.get(timeout=POLL_INTERVAL)
        except queue.Empty:
            continue


@contextmanager
def _sigint_sets(event: threading.Event) -> Iterator[None]:
    """Route SIGINT to *event* for the duration of the block.

    Signal handlers can only be installed from the main thread; elsewhere the
    block runs unchanged and only *event* cancels the login.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: Any) -> None:
        event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)


HELP_TEXT = """
Usage: oidclogin login [OPTIONS] [K=V...]

  The OIDC auth method allows users to authenticate using an OIDC provider.
  The provider must be configured as part of a role by the operator.

  Authenticate using role "engineering":

      $ oidclogin login role=engineering
      Complete the login via your OIDC provider. Launching browser to:

          https://accounts.google.com/o/oauth2/v2/...

  The default browser will be opened for the user to complete the login.
  Alternatively, the user may visit the provided URL directly.

Configuration:

  role=<string>
      Role to authenticate as. If omitted, the role configured as the
      default on the auth method is used.

  mount=<string>
      Path where the OIDC auth method is mounted. Defaults to "oidc".

  listenaddress=<string>
      Optional address to bind the OIDC callback listener to.
      Defaults to "localhost".

  port=<string>
      Optional localhost port to use for the OIDC callback. Defaults to "8250".

  callbackmethod=<string>
      Optional method to use in the OIDC redirect_uri. Defaults to "http".

  callbackhost=<string>
      Optional callback host address to use in the OIDC redirect_uri.
      Defaults to "localhost".

  callbackport=<string>
      Optional port to use in the OIDC redirect_uri. Defaults to the value
      set for port. Set this when the browser reaches the listener through
      NAT or port forwarding.
"""
