"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles everything oidclogin reads before a login starts:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oidclogin/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~oidclogin.models.GlobalConfig`
  JSON file holding the service address and default login options.
* **Settings resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, and the global config into the
  :class:`~oidclogin.models.ClientSettings` used by the HTTP client.
* **Login options** -- :func:`parse_config_args` turns ``K=V`` command-line
  arguments into the flat mapping consumed by the login handler.

Config writes use a temp-file-then-rename strategy (:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from oidclogin.exceptions import ConfigError, InvalidUsageError
from oidclogin.models import LOGIN_OPTIONS, ClientSettings, GlobalConfig

_APP_NAME = "oidclogin"
_CONFIG_FILENAME = "config.json"

ENV_ADDRESS = "VAULT_ADDR"
ENV_TOKEN = "VAULT_TOKEN"
ENV_NAMESPACE = "VAULT_NAMESPACE"
ENV_SKIP_VERIFY = "VAULT_SKIP_VERIFY"

_TRUTHY = {"1", "true", "t", "yes", "y", "on"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/oidclogin/`` (default ``~/.config/oidclogin/``).
    On macOS/Windows: ``~/.oidclogin/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oidclogin/`` (default ``~/.local/share/oidclogin/``).
    On macOS/Windows: ``~/.oidclogin/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to *path* atomically using a sibling temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration.

    Returns:
        The deserialised :class:`~oidclogin.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Settings resolution ---


def resolve_settings(
    cli_address: Optional[str] = None,
    cli_namespace: Optional[str] = None,
    cli_tls_skip_verify: bool = False,
    global_config: Optional[GlobalConfig] = None,
) -> ClientSettings:
    """Resolve client settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--address``, ``--namespace``, ``--tls-skip-verify``)
        2. Environment variables (``VAULT_ADDR``, ``VAULT_TOKEN``,
           ``VAULT_NAMESPACE``, ``VAULT_SKIP_VERIFY``)
        3. Global config (``~/.config/oidclogin/config.json``)
        4. Defaults

    Args:
        cli_address: Service address given on the command line.
        cli_namespace: Namespace given on the command line.
        cli_tls_skip_verify: Disable TLS verification from the command line.
        global_config: Already-loaded global config; loaded from disk when
            omitted.

    Returns:
        The effective :class:`~oidclogin.models.ClientSettings`.
    """
    cfg = global_config if global_config is not None else load_global_config()
    settings = ClientSettings(verify_ssl=cfg.verify_ssl, timeout=cfg.timeout)

    if cfg.address:
        settings.address = cfg.address
    if cfg.namespace:
        settings.namespace = cfg.namespace

    env_address = os.environ.get(ENV_ADDRESS)
    if env_address:
        settings.address = env_address
    env_token = os.environ.get(ENV_TOKEN)
    if env_token:
        settings.token = env_token
    env_namespace = os.environ.get(ENV_NAMESPACE)
    if env_namespace:
        settings.namespace = env_namespace
    if os.environ.get(ENV_SKIP_VERIFY, "").strip().lower() in _TRUTHY:
        settings.verify_ssl = False

    if cli_address is not None:
        settings.address = cli_address
    if cli_namespace is not None:
        settings.namespace = cli_namespace
    if cli_tls_skip_verify:
        settings.verify_ssl = False

    return settings


# --- Login options ---


def parse_config_args(args: list[str]) -> dict[str, str]:
    """Parse ``K=V`` command-line arguments into a flat option mapping.

    Arguments are split on the first ``=`` so values may contain ``=``
    themselves. Keys are stripped and lower-cased; values are kept verbatim.

    Args:
        args: Raw positional arguments, e.g. ``["role=dev", "port=8400"]``.

    Returns:
        The option mapping.

    Raises:
        InvalidUsageError: If an argument has no ``=`` or an empty key.
    """
    options: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        key = key.strip().lower()
        if not sep or not key:
            raise InvalidUsageError(
                f"Invalid login option '{arg}': expected the form KEY=VALUE"
            )
        options[key] = value
    return options


def merge_login_options(
    defaults: Mapping[str, str], overrides: Mapping[str, str]
) -> dict[str, str]:
    """Merge default login options with command-line ones (command line wins)."""
    merged = dict(defaults)
    merged.update(overrides)
    return merged


def unknown_login_options(options: Mapping[str, str]) -> list[str]:
    """Return the keys of *options* that the login handler does not recognise."""
    return sorted(key for key in options if key not in LOGIN_OPTIONS)
