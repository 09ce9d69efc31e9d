"""HTML pages returned to the browser by the callback listener.

Templates are rendered with Jinja2 and autoescaping, so provider error text
embedded in the error page cannot inject markup.
"""

from __future__ import annotations

from jinja2 import DictLoader, Environment, select_autoescape

from oidclogin.login.classifier import GENERIC_SUMMARY
from oidclogin.models import ClassifiedError

GENERIC_DETAIL = "The login could not be completed. Check your terminal for details."

_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{% block title %}{% endblock %}</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Helvetica, Arial, sans-serif;
           background: #f5f6f8; color: #1f2328; display: flex; justify-content: center;
           align-items: center; min-height: 100vh; margin: 0; }
    .card { background: #fff; border-radius: 8px; box-shadow: 0 2px 12px rgba(0, 0, 0, 0.08);
            padding: 40px 48px; max-width: 560px; text-align: center; }
    h1 { font-size: 22px; margin: 0 0 12px; }
    .ok { color: #1a7f37; }
    .fail { color: #cf222e; }
    .detail { font-family: Menlo, Consolas, monospace; font-size: 14px; background: #f6f8fa;
              border-radius: 6px; padding: 12px; margin: 16px 0; text-align: left;
              white-space: pre-wrap; word-break: break-word; }
    p { color: #57606a; line-height: 1.5; }
  </style>
</head>
<body>
  <div class="card">
    {% block content %}{% endblock %}
  </div>
</body>
</html>
"""

_TEMPLATES = {
    "layout.html": _LAYOUT,
    "success.html": """{% extends "layout.html" %}
{% block title %}Signed in{% endblock %}
{% block content %}
    <h1 class="ok">Signed in via your OIDC provider</h1>
    <p>You can close this window and return to the terminal.</p>
{% endblock %}
""",
    "error.html": """{% extends "layout.html" %}
{% block title %}Login failed{% endblock %}
{% block content %}
    <h1 class="fail">{{ summary }}</h1>
    <div class="detail">{{ detail }}</div>
    <p>Return to the terminal and run the login again.</p>
{% endblock %}
""",
    "completed.html": """{% extends "layout.html" %}
{% block title %}Login already handled{% endblock %}
{% block content %}
    <h1>This login has already been handled</h1>
    <p>Return to the terminal to see the result.</p>
{% endblock %}
""",
    "not_found.html": """{% extends "layout.html" %}
{% block title %}Not found{% endblock %}
{% block content %}
    <h1>Not found</h1>
    <p>This listener only serves the OIDC login callback.</p>
{% endblock %}
""",
}

_env = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=select_autoescape(["html"]),
)


def success_html() -> str:
    return _env.get_template("success.html").render()


def error_html(classified: ClassifiedError) -> str:
    """Render the error page, falling back to a generic message when classification came up empty."""
    return _env.get_template("error.html").render(
        summary=classified.summary or GENERIC_SUMMARY,
        detail=classified.detail or GENERIC_DETAIL,
    )


def completed_html() -> str:
    return _env.get_template("completed.html").render()


def not_found_html() -> str:
    return _env.get_template("not_found.html").render()
