"""Canonical Pydantic models shared across all oidclogin modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Configuration models** -- settings for the remote client and the CLI:
    :class:`ClientSettings` and :class:`GlobalConfig`.

**Login models** -- transient, created at the start of one login attempt and
discarded when it returns:
    :class:`LoginConfig`, :class:`AuthorizationRequest`, and
    :class:`ClassifiedError`.

**Service response models** -- the credential returned by the auth service:
    :class:`Secret` and :class:`SecretAuth`.

Response models use ``extra="allow"`` so that fields added by newer service
versions are preserved in ``model_extra`` rather than dropped.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from oidclogin.exceptions import InvalidUsageError

DEFAULT_MOUNT = "oidc"
DEFAULT_LISTEN_ADDRESS = "localhost"
DEFAULT_PORT = "8250"
DEFAULT_CALLBACK_METHOD = "http"
DEFAULT_CALLBACK_HOST = "localhost"

CALLBACK_PATH = "/oidc/callback"
"""Path of the local endpoint the provider redirects the browser to."""

LOGIN_OPTIONS = (
    "role",
    "mount",
    "listenaddress",
    "port",
    "callbackmethod",
    "callbackhost",
    "callbackport",
)
"""Option names recognised in the ``K=V`` login configuration mapping."""


# --- Configuration ---


class ClientSettings(BaseModel):
    """Connection settings for :class:`~oidclogin.client.AuthServiceClient`.

    Produced by :func:`~oidclogin.config.resolve_settings` from CLI flags,
    environment variables, and the global config file.
    """

    address: str = Field(
        default="https://127.0.0.1:8200", description="Base address of the auth service"
    )
    token: Optional[str] = Field(
        default=None, description="Token sent with each request, if any"
    )
    namespace: Optional[str] = Field(
        default=None, description="Namespace header sent with each request, if any"
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    timeout: int = Field(default=60, description="Request timeout in seconds")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/oidclogin/config.json``.

    Loaded and saved by :func:`~oidclogin.config.load_global_config` and
    :func:`~oidclogin.config.save_global_config`. Values here have the lowest
    precedence and are overridden by environment variables and CLI flags.

    The ``login`` mapping holds default ``K=V`` options (for example a
    default ``role`` or ``port``) merged under the ones given on the
    command line.
    """

    address: Optional[str] = None
    namespace: Optional[str] = None
    verify_ssl: bool = True
    timeout: int = 60
    login: dict[str, str] = Field(default_factory=dict)


# --- Login ---


def _check_port(value: str) -> str:
    if not value.isdigit() or int(value) > 65535:
        raise ValueError(f"'{value}' is not a valid port")
    return value


class LoginConfig(BaseModel):
    """Resolved options for one login attempt.

    All values are kept as strings, the way they arrive from the ``K=V``
    command line. Use :meth:`from_mapping` to apply the documented defaults;
    an option that is present in the mapping always wins over its default,
    even when its value is empty.

    ``callback_port`` may differ from ``port`` when the browser reaches the
    listener through NAT or port forwarding.
    """

    role: str = ""
    mount: str = DEFAULT_MOUNT
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    port: str = DEFAULT_PORT
    callback_method: str = DEFAULT_CALLBACK_METHOD
    callback_host: str = DEFAULT_CALLBACK_HOST
    callback_port: str = DEFAULT_PORT

    @field_validator("port", "callback_port")
    @classmethod
    def _validate_port(cls, value: str) -> str:
        return _check_port(value)

    @classmethod
    def from_mapping(cls, options: Mapping[str, str]) -> LoginConfig:
        """Build a config from a flat option mapping, filling in defaults.

        Args:
            options: Mapping keyed by the names in :data:`LOGIN_OPTIONS`.
                Unknown keys are ignored.

        Returns:
            The resolved :class:`LoginConfig`.

        Raises:
            InvalidUsageError: If ``port`` or ``callbackport`` is not a
                valid port number.
        """
        port = options.get("port", DEFAULT_PORT)
        try:
            return cls(
                role=options.get("role", ""),
                mount=options.get("mount", DEFAULT_MOUNT),
                listen_address=options.get("listenaddress", DEFAULT_LISTEN_ADDRESS),
                port=port,
                callback_method=options.get("callbackmethod", DEFAULT_CALLBACK_METHOD),
                callback_host=options.get("callbackhost", DEFAULT_CALLBACK_HOST),
                callback_port=options.get("callbackport", port),
            )
        except ValidationError as exc:
            details = "; ".join(err["msg"] for err in exc.errors())
            raise InvalidUsageError(f"Invalid login configuration: {details}") from exc


class AuthorizationRequest(BaseModel):
    """Body of the ``auth_url`` request: the role plus the redirect URI."""

    model_config = ConfigDict(frozen=True)

    role: str
    redirect_uri: str

    @classmethod
    def build(
        cls,
        role: str,
        callback_port: str,
        callback_method: str,
        callback_host: str,
    ) -> AuthorizationRequest:
        """Build the request, formatting the redirect URI from its parts."""
        return cls(
            role=role,
            redirect_uri=f"{callback_method}://{callback_host}:{callback_port}{CALLBACK_PATH}",
        )


class ClassifiedError(BaseModel):
    """An error message split into a known summary header and the remaining detail.

    Both fields are empty when the raw message carried no ``Errors:`` block.
    """

    model_config = ConfigDict(frozen=True)

    summary: str = ""
    detail: str = ""


# --- Service responses ---


class SecretAuth(BaseModel):
    """The ``auth`` block of a login response: the issued token and its metadata."""

    model_config = ConfigDict(extra="allow")

    client_token: str = ""
    accessor: str = ""
    policies: list[str] = Field(default_factory=list)
    token_policies: list[str] = Field(default_factory=list)
    identity_policies: list[str] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)
    lease_duration: int = 0
    renewable: bool = False
    entity_id: str = ""
    token_type: str = ""
    orphan: bool = False

    @field_validator("policies", "token_policies", "identity_policies", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_to_empty_dict(cls, value: Any) -> Any:
        return {} if value is None else value


class Secret(BaseModel):
    """A response object from the auth service.

    For ``auth_url`` requests the interesting part is ``data``; for the
    callback exchange it is ``auth``. The rest of the object is passed
    through untouched to the caller.
    """

    model_config = ConfigDict(extra="allow")

    request_id: str = ""
    lease_id: str = ""
    lease_duration: int = 0
    renewable: bool = False
    data: Optional[dict[str, Any]] = None
    warnings: Optional[list[str]] = None
    auth: Optional[SecretAuth] = None

    @property
    def token(self) -> str:
        """The issued client token, or ``""`` when the response carries none."""
        if self.auth is None:
            return ""
        return self.auth.client_token
