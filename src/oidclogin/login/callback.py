"""Local callback listener for the provider redirect.

The listener is a :class:`http.server.ThreadingHTTPServer` bound for the
duration of one login, so an idle browser preconnect cannot hold up the
real redirect. Requests are dispatched through a route table owned by
the server instance, so two logins in one process never share handlers.

The callback route hands its result to the waiting login through a
single-slot :class:`queue.Queue` (the *resolution* queue). Writes use
``put_nowait``: the first outcome wins, and any later one (for instance the
result of an exchange that finished after the user pressed Ctrl-C) is
dropped instead of blocking the server thread.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qs, urlparse

from oidclogin.client import AuthServiceClient
from oidclogin.exceptions import ListenerError
from oidclogin.login.classifier import parse_error
from oidclogin.login.pages import completed_html, error_html, not_found_html, success_html
from oidclogin.models import Secret

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE = 1.0
"""Seconds :meth:`CallbackServer.close` waits for the serve loop to stop."""


@dataclass(frozen=True)
class LoginOutcome:
    """The single result of a login attempt.

    At most one of ``credential`` and ``error`` is set. Both are ``None`` only
    when the service completed the exchange without returning a body.
    """

    credential: Optional[Secret] = None
    error: Optional[BaseException] = None


def deliver(resolution: queue.Queue, outcome: LoginOutcome) -> bool:
    """Offer *outcome* to the resolution queue without blocking.

    Returns:
        ``True`` if the outcome was accepted, ``False`` if the login had
        already been resolved.
    """
    try:
        resolution.put_nowait(outcome)
    except queue.Full:
        logger.debug("Login already resolved, dropping late outcome: %r", outcome)
        return False
    return True


RouteHandler = Callable[["CallbackHandler", dict[str, list[str]]], None]


class CallbackHandler(BaseHTTPRequestHandler):
    """Dispatches ``GET`` requests to the route table of the owning server."""

    server: CallbackServer
    timeout = 30

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        route = self.server.routes.get(parsed.path)
        if route is None:
            self.send_html(HTTPStatus.NOT_FOUND, not_found_html())
            return
        route(self, parse_qs(parsed.query))

    def send_html(self, status: HTTPStatus, body: str) -> None:
        """Write a complete ``text/html`` response and flush it to the browser."""
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)
        self.wfile.flush()

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class CallbackServer(ThreadingHTTPServer):
    """One-login HTTP listener.

    The socket is bound in the constructor, so a busy port is reported before
    the browser is opened. :meth:`serve_in_background` runs the serve loop on
    a daemon thread and each request is handled on its own daemon thread;
    :meth:`close` stops the loop and releases the port.

    Args:
        address: Interface to bind, e.g. ``localhost``.
        port: TCP port to bind (``0`` picks a free one).
        routes: Mapping of URL path to route handler.
        resolution: Single-slot queue that receives the login outcome; a
            serve loop failure is reported there too.

    Raises:
        ListenerError: If the address cannot be bound.
    """

    # a second listener on the same port must fail to bind
    allow_reuse_port = False
    # close() must not join request threads still running an exchange
    block_on_close = False

    def __init__(
        self,
        address: str,
        port: int,
        routes: Mapping[str, RouteHandler],
        resolution: queue.Queue,
    ) -> None:
        self.routes = dict(routes)
        self.resolution = resolution
        self._closing = threading.Event()
        self._thread: Optional[threading.Thread] = None
        try:
            super().__init__((address, port), CallbackHandler)
        except OSError as exc:
            raise ListenerError(f"Unable to listen on {address}:{port}: {exc}") from exc

    @property
    def port(self) -> int:
        """The bound port (useful when constructed with port ``0``)."""
        return self.server_address[1]

    def serve_in_background(self) -> None:
        self._thread = threading.Thread(
            target=self._serve, name="oidc-callback-server", daemon=True
        )
        self._thread.start()
        logger.debug("Callback listener serving on port %d", self.port)

    def _serve(self) -> None:
        try:
            self.serve_forever(poll_interval=0.2)
        except Exception as exc:
            if self._closing.is_set():
                logger.debug("Callback listener stopped: %s", exc)
                return
            deliver(self.resolution, LoginOutcome(error=ListenerError(f"Callback listener failed: {exc}")))

    def close(self) -> None:
        """Stop serving and release the port.

        Does not wait for an in-flight request beyond :data:`SHUTDOWN_GRACE`;
        such a request finishes on the server thread and its outcome is
        dropped. Safe to call more than once.
        """
        if self._closing.is_set():
            return
        self._closing.set()
        if self._thread is not None:
            # shutdown() blocks until the serve loop exits, so run it aside
            stopper = threading.Thread(target=self.shutdown, daemon=True)
            stopper.start()
            stopper.join(timeout=SHUTDOWN_GRACE)
        self.server_close()
        logger.debug("Callback listener closed")


class OIDCCallback:
    """Route handler for ``/oidc/callback``.

    Exchanges the ``code`` and ``state`` from the redirect for a credential,
    answers the browser with a success or error page, and then delivers the
    outcome. Only the first request is exchanged; repeats get a ``409`` page
    and leave the resolution queue alone.

    Args:
        client: Open client used for the exchange.
        mount: Path the OIDC auth method is mounted at.
        resolution: Queue that receives the :class:`LoginOutcome`.
    """

    def __init__(self, client: AuthServiceClient, mount: str, resolution: queue.Queue) -> None:
        self._client = client
        self._path = f"auth/{mount}/oidc/callback"
        self._resolution = resolution
        self._lock = threading.Lock()
        self._handled = False

    def __call__(self, request: CallbackHandler, query: dict[str, list[str]]) -> None:
        with self._lock:
            claimed = not self._handled
            self._handled = True
        if not claimed:
            request.send_html(HTTPStatus.CONFLICT, completed_html())
            return

        outcome = self._exchange(_first(query, "code"), _first(query, "state"))
        if outcome.error is None:
            page = success_html()
        else:
            page = error_html(parse_error(outcome.error))

        try:
            request.send_html(HTTPStatus.OK, page)
        except OSError as exc:
            logger.debug("Could not send callback page: %s", exc)
        deliver(self._resolution, outcome)

    def _exchange(self, code: str, state: str) -> LoginOutcome:
        try:
            secret = self._client.read_with_data(
                self._path, {"code": [code], "state": [state]}
            )
        except Exception as exc:
            # handed to the waiting login, which raises it
            return LoginOutcome(error=exc)
        return LoginOutcome(credential=secret)


def _first(query: dict[str, list[str]], name: str) -> str:
    values = query.get(name)
    return values[0] if values else ""
