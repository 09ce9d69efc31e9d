"""Request the provider authorization URL for a role from the auth service."""

from __future__ import annotations

from typing import Optional

from oidclogin.client import AuthServiceClient
from oidclogin.exceptions import AuthError
from oidclogin.models import AuthorizationRequest, Secret


def fetch_auth_url(
    client: AuthServiceClient,
    role: str,
    mount: str,
    callback_port: str,
    callback_method: str,
    callback_host: str,
) -> str:
    """Ask the auth service for the URL the user must visit to log in.

    Writes ``{role, redirect_uri}`` to ``auth/{mount}/oidc/auth_url``, where
    the redirect URI is ``{callback_method}://{callback_host}:{callback_port}/oidc/callback``.

    Args:
        client: An open :class:`~oidclogin.client.AuthServiceClient`.
        role: Name of the OIDC role to log in with.
        mount: Path the OIDC auth method is mounted at.
        callback_port: Port the browser is redirected to.
        callback_method: Scheme of the redirect URI.
        callback_host: Host of the redirect URI.

    Returns:
        The non-empty authorization URL.

    Raises:
        RemoteServiceError: If the service rejects the request.
        ConnectionError_: If the service cannot be reached.
        AuthError: If the service answered without a usable ``auth_url``,
            which usually means the role is misconfigured server-side.
    """
    request = AuthorizationRequest.build(role, callback_port, callback_method, callback_host)
    secret = client.write(f"auth/{mount}/oidc/auth_url", request.model_dump())

    auth_url = extract_auth_url(secret)
    if not auth_url:
        raise AuthError(
            f'Unable to authorize role "{role}". '
            "Check the auth service logs for more information."
        )
    return auth_url


def extract_auth_url(secret: Optional[Secret]) -> str:
    """Return ``data.auth_url`` from a response, or ``""`` if it is absent or not a string."""
    if secret is None or not secret.data:
        return ""
    value = secret.data.get("auth_url")
    if not isinstance(value, str):
        return ""
    return value
