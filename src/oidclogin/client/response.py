"""Decoding of auth service responses into :class:`~oidclogin.models.Secret` objects.

The service answers successful requests with a JSON object (or an empty
``204``) and failed ones with ``{"errors": ["..."]}``. This module turns the
former into models and the latter into
:class:`~oidclogin.exceptions.RemoteServiceError`.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from oidclogin.exceptions import RemoteServiceError
from oidclogin.models import Secret


def parse_secret_response(response: httpx.Response) -> Optional[Secret]:
    """Decode a service response.

    Args:
        response: The :class:`httpx.Response` to decode.

    Returns:
        The decoded :class:`~oidclogin.models.Secret`, or ``None`` for an
        empty (``204``) response.

    Raises:
        RemoteServiceError: On an error status, or when a success body is
            not a JSON object of the expected shape.
    """
    if response.status_code >= 400:
        raise service_error(response)
    if response.status_code == 204 or not response.content:
        return None

    body = _json_or_none(response)
    if not isinstance(body, dict):
        raise _error_for(response, raw_message=response.text)
    try:
        return Secret.model_validate(body)
    except ValidationError as exc:
        raise _error_for(response, raw_message=f"Malformed response: {exc}") from exc


def service_error(response: httpx.Response) -> RemoteServiceError:
    """Build the :class:`~oidclogin.exceptions.RemoteServiceError` for an error response."""
    body = _json_or_none(response)
    if isinstance(body, dict) and isinstance(body.get("errors"), list) and body["errors"]:
        return _error_for(response, errors=[str(err) for err in body["errors"]])
    return _error_for(response, raw_message=response.text)


def _error_for(
    response: httpx.Response,
    errors: Optional[list[str]] = None,
    raw_message: str = "",
) -> RemoteServiceError:
    request = response.request
    return RemoteServiceError(
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        errors=errors,
        raw_message=raw_message,
    )


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
