"""Browser-based OIDC login: auth URL fetch, local callback listener, and orchestration."""

from oidclogin.login.classifier import parse_error
from oidclogin.login.handler import OIDCLoginHandler, auth

__all__ = ["OIDCLoginHandler", "auth", "parse_error"]
