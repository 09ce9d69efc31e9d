"""Split auth service error messages into a summary and a detail for display.

Error responses from the OIDC callback embed the provider's message in an
``Errors:`` block::

    Error making API request.

    URL: GET https://vault.example.com/v1/auth/oidc/oidc/callback?...
    Code: 400. Errors:

    * login failed: upstream provider rejected the code

:func:`parse_error` pulls out the text after the last ``* `` bullet and, when
it starts with one of a few known sentences, separates that sentence from the
rest so the browser page can show ``login failed`` as a heading and the
remainder underneath.
"""

from __future__ import annotations

import re

from oidclogin.models import ClassifiedError

ERR_NO_RESPONSE = "no response from provider"
ERR_LOGIN_FAILED = "login failed"
ERR_TOKEN_VERIFICATION = "token verification failed"

KNOWN_HEADERS = (ERR_NO_RESPONSE, ERR_LOGIN_FAILED, ERR_TOKEN_VERIFICATION)
"""Recognised summary sentences, in priority order."""

GENERIC_SUMMARY = "Login error"

_ERROR_BLOCK = re.compile(r"Errors:.*\* *(.*)", re.DOTALL)


def parse_error(exc: BaseException | str) -> ClassifiedError:
    """Classify an error's text into ``(summary, detail)``.

    Args:
        exc: The error, or its text.

    Returns:
        A :class:`~oidclogin.models.ClassifiedError`:

        * block starts with a known header -- ``summary`` is the header,
          ``detail`` the rest with leading ``:``/``.`` and whitespace removed
          (the whole block if nothing is left);
        * block found but no header matched -- ``summary`` is
          ``"Login error"`` and ``detail`` the whole block;
        * no ``Errors:`` block at all -- both fields are empty.
    """
    match = _ERROR_BLOCK.search(str(exc))
    if match is None:
        return ClassifiedError()

    block = match.group(1).strip()
    for header in KNOWN_HEADERS:
        if block.startswith(header):
            detail = block[len(header):].lstrip(":.").strip()
            return ClassifiedError(summary=header, detail=detail or block)

    return ClassifiedError(summary=GENERIC_SUMMARY, detail=block)
