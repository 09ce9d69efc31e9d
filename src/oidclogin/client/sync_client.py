"""Synchronous HTTP client for the remote auth service.

:class:`AuthServiceClient` wraps :class:`httpx.Client` with the conventions
of a Vault-compatible API:

- **Logical paths** -- callers pass paths such as ``auth/oidc/oidc/auth_url``;
  the client prefixes them with ``/v1/``.
- **Headers** -- ``X-Vault-Token`` and ``X-Vault-Namespace`` are sent when
  configured.
- **Error mapping** -- error statuses raise
  :class:`~oidclogin.exceptions.RemoteServiceError`, transport failures
  raise :class:`~oidclogin.exceptions.ConnectionError_`.

There is no retry: a login is a single interactive attempt and the user
re-runs the command on failure.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from oidclogin.client.response import parse_secret_response
from oidclogin.exceptions import ConnectionError_
from oidclogin.models import ClientSettings, Secret

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Vault-Token"
NAMESPACE_HEADER = "X-Vault-Namespace"


class AuthServiceClient:
    """Synchronous client for the auth service API.

    Must be used as a context manager so that the underlying transport is
    opened and closed. A single instance may be shared between the thread
    that starts a login and the callback server thread that completes it.

    Args:
        settings: Address, token, namespace, and TLS/timeout settings.
        transport: Optional custom :mod:`httpx` transport (tests pass an
            :class:`httpx.MockTransport`).

    Example::

        with AuthServiceClient(settings) as client:
            secret = client.read_with_data("auth/oidc/oidc/callback", {"code": ["abc"]})
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> AuthServiceClient:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._settings.token:
            headers[TOKEN_HEADER] = self._settings.token
        if self._settings.namespace:
            headers[NAMESPACE_HEADER] = self._settings.namespace

        self._client = httpx.Client(
            base_url=f"{self._settings.address.rstrip('/')}/v1/",
            headers=headers,
            timeout=self._settings.timeout,
            verify=self._settings.verify_ssl,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Logical operations
    # ------------------------------------------------------------------ #

    def write(self, path: str, data: Mapping[str, Any]) -> Optional[Secret]:
        """Write *data* to a logical path.

        Args:
            path: Logical path, e.g. ``auth/oidc/oidc/auth_url``.
            data: JSON-serialisable request body.

        Returns:
            The decoded response, or ``None`` when the service returned no body.

        Raises:
            RemoteServiceError: On an error response.
            ConnectionError_: On network or timeout errors.
        """
        return self._request("PUT", path, json_body=dict(data))

    def read_with_data(
        self, path: str, data: Mapping[str, list[str]]
    ) -> Optional[Secret]:
        """Read a logical path, passing *data* as query parameters.

        Args:
            path: Logical path, e.g. ``auth/oidc/oidc/callback``.
            data: Multi-valued query data, e.g. ``{"code": ["abc"]}``.

        Returns:
            The decoded response, or ``None`` when the service returned no body.

        Raises:
            RemoteServiceError: On an error response.
            ConnectionError_: On network or timeout errors.
        """
        params = [(key, value) for key, values in data.items() for value in values]
        return self._request("GET", path, params=params)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> Optional[Secret]:
        assert self._client is not None, "Client not initialised -- use as context manager"

        logger.debug("%s /v1/%s", method, path.lstrip("/"))
        try:
            response = self._client.request(
                method,
                path.lstrip("/"),
                params=params,
                json=json_body,
            )
        except httpx.TransportError as exc:
            raise ConnectionError_(
                f"Could not reach the auth service at {self._settings.address}: {exc}"
            ) from exc

        return parse_secret_response(response)
