"""Response error extraction for load test observability.

Parses checkout API error responses into human-readable messages.
Handles two response shapes:

- Request shape errors (422): {"error": [{"loc": [...], "msg": "..."}], "code": "INVALID_REQUEST"}
- Checkout errors (400/404/409/422/503): {"error": "msg", "code": "..."}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    Gracefully handles unparseable bodies and missing fields.
    """
    try:
        body = response.json()
    except ValueError:
        # Not JSON: return raw text, truncated
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if not isinstance(body, dict):
        return str(body)[:300]

    code = body.get("code")
    error = body.get("error", body.get("detail"))

    if isinstance(error, list):
        parts = []
        for err in error:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        message = " | ".join(parts)
    elif error is not None:
        message = str(error)
    else:
        # Unknown shape: stringify and truncate
        return str(body)[:300]

    return f"{code}: {message}" if code else message
