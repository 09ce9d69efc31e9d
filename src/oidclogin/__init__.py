"""oidclogin -- browser-based OIDC login for Vault-compatible auth services.

This package implements the client half of an OpenID Connect login: it asks
the auth service for an authorization URL, opens the user's browser, waits on
a short-lived local callback listener for the provider's redirect, and trades
the returned ``code``/``state`` for a credential.

Typical usage::

    from oidclogin.client import AuthServiceClient
    from oidclogin.config import resolve_settings
    from oidclogin.login import auth

    with AuthServiceClient(resolve_settings()) as client:
        secret = auth(client, {"role": "engineering"})

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and settings resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    client: HTTP client for the remote auth service.
    login: the OIDC login flow itself.
"""

__version__ = "0.3.0"
