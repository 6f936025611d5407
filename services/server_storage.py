"""Server-side storage handler backed by request/response cookies.

Nothing is mutated in place: values are read from an incoming `Cookie`
header and writes come back as `Set-Cookie` header strings for the caller
to attach to its response.

Every value is written twice:
1. `<prefix>_ss_<key>`: HttpOnly, only visible to the server. Trusted copy.
2. `<prefix>_cs_<key>`: readable by client-side scripts (UI, debugging).

Reads prefer the server copy and fall back to the client copy.
"""

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from config import SESSION_KEYS
from utils.push_id import from_millis

# Characters encodeURIComponent leaves alone, beyond letters and digits
_URI_SAFE = "-_.!~*'()"

_EXPIRED = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_cookie_header(cookie_header: Optional[str]) -> Dict[str, str]:
    """Split a Cookie header into a name -> raw value mapping."""
    cookies = {}
    for chunk in (cookie_header or "").split(";"):
        name, _, value = chunk.strip().partition("=")
        if name:
            cookies[name] = value
    return cookies


def _http_date(expires) -> str:
    if not isinstance(expires, datetime):
        expires = from_millis(int(expires))
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return format_datetime(expires.astimezone(timezone.utc), usegmt=True)


def build_cookie(name: str, value: str, options: dict) -> str:
    """Render one Set-Cookie header value."""
    parts = [f"{name}={quote(value, safe=_URI_SAFE)}"]
    if options.get("path"):
        parts.append(f"Path={options['path']}")
    if options.get("expires") is not None:
        parts.append(f"Expires={_http_date(options['expires'])}")
    if options.get("domain"):
        parts.append(f"Domain={options['domain']}")
    if options.get("secure"):
        parts.append("Secure")
    if options.get("http_only"):
        parts.append("HttpOnly")
    if options.get("same_site"):
        parts.append(f"SameSite={options['same_site']}")
    return "; ".join(parts)


class ServerStorage:
    """Stateless cookie storage handler for request/response servers."""

    def __init__(self, prefix: str = "", cookie_options: Optional[dict] = None):
        self.prefix = prefix
        self.cookie_options = {
            "path": "/",
            "secure": True,
            "same_site": "Strict",
            **(cookie_options or {}),
        }

    def server_key(self, key: str) -> str:
        return f"{self.prefix}_ss_{key}"

    def client_key(self, key: str) -> str:
        return f"{self.prefix}_cs_{key}"

    def get(self, key: str, cookie_header: Optional[str] = "") -> Optional[str]:
        """Read `key` from a raw Cookie header, server copy first."""
        if not cookie_header:
            return None
        cookies = parse_cookie_header(cookie_header)

        server_value = cookies.get(self.server_key(key))
        if server_value:
            decoded = unquote(server_value)
            if decoded:
                return decoded

        client_value = cookies.get(self.client_key(key))
        return unquote(client_value) if client_value else None

    def set(self, key: str, value: str, options: Optional[dict] = None) -> List[str]:
        """Return the [server, client] Set-Cookie headers storing `value`."""
        merged = {**self.cookie_options, **(options or {})}
        return [
            build_cookie(self.server_key(key), value, {**merged, "http_only": True}),
            build_cookie(self.client_key(key), value, {**merged, "http_only": False}),
        ]

    def clear(self) -> List[str]:
        """Return Set-Cookie headers that expire every session cookie."""
        headers = []
        for key in SESSION_KEYS:
            headers.extend(self.set(key, "", {"expires": _EXPIRED}))
        return headers
