"""
Signed URLs for private files on the local driver.

A signed URL is the canonical view URL of a private file with a ``hash``
query parameter appended. The hash is an HS256 JWT binding the exact URL,
the HTTP method and an expiry, so verification needs no stored state.
"""

from datetime import datetime, timedelta, timezone
from urllib.parse import quote, unquote

import jwt

from packages.filesystem.config import DEFAULT_SIGNED_URL_TTL_SECONDS

ALGORITHM = "HS256"
HASH_QUERY_KEY = "hash"
SIGNED_METHOD = "GET"

VIEW_PRIVATE_FILE_ROUTE = "/private-file/view/{filepath}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalUrlSigner:
    """Sign and verify time-limited URLs with a shared secret."""

    def __init__(
        self,
        secret: str,
        app_base_url: str,
        default_ttl_seconds: int | None = None,
    ):
        self.secret = secret
        self.app_base_url = app_base_url.rstrip("/")
        self.default_ttl_seconds = default_ttl_seconds

    def build_url_to_be_signed(self, filepath: str) -> str:
        """Return the canonical absolute view URL of a private file."""
        route = VIEW_PRIVATE_FILE_ROUTE.format(filepath=quote(filepath, safe=""))
        return f"{self.app_base_url}{route}"

    def get_ttl(self, ttl_seconds: int | None = None) -> int:
        if ttl_seconds:
            return ttl_seconds
        if self.default_ttl_seconds:
            return self.default_ttl_seconds
        return DEFAULT_SIGNED_URL_TTL_SECONDS

    def sign(self, url: str, ttl_seconds: int | None = None) -> str:
        """
        Append a ``hash`` parameter proving access to ``url`` until expiry.

        Raises:
            ValueError: If no signer secret is configured
        """
        if not self.secret:
            raise ValueError("Local URL signer secret is not configured")

        payload = {
            "url": url,
            "method": SIGNED_METHOD,
            "exp": _utcnow() + timedelta(seconds=self.get_ttl(ttl_seconds)),
        }
        token = jwt.encode(payload, self.secret, algorithm=ALGORITHM)
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{HASH_QUERY_KEY}={token}"

    def verify(self, signed_url: str) -> bool:
        """Return True for an untampered, unexpired URL; never raises."""
        if not self.secret or "?" not in signed_url:
            return False

        url, query = signed_url.split("?", 1)
        token = None
        remaining = []
        for param in query.split("&"):
            if param.startswith(f"{HASH_QUERY_KEY}="):
                token = unquote(param[len(HASH_QUERY_KEY) + 1:])
            else:
                remaining.append(param)
        if not token:
            return False
        if remaining:
            url = f"{url}?{'&'.join(remaining)}"

        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except jwt.InvalidTokenError:
            return False

        return payload.get("url") == url and payload.get("method") == SIGNED_METHOD
