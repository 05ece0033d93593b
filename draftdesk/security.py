"""
Request authentication for the admin API.

Callers present an API key (X-API-Key or Authorization: Bearer).
Keys are rate limited per minute, and write endpoints also reject
browser requests coming from origins outside ALLOWED_ORIGINS.
With DEV_MODE on and no keys configured, every request is accepted.
"""

import hashlib
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Deque, Dict, Optional
from urllib.parse import urlparse

from fastapi import Depends, Header, HTTPException, Request

from draftdesk.config import AppConfig, config


DEV_CALLER = "dev"


class RateLimiter:
    """Sliding one-minute window of request timestamps per key."""

    window_seconds = 60.0

    def __init__(self):
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def allow(self, key: str, per_minute: int) -> bool:
        """Record a hit for key unless the window is already full."""
        now = time.monotonic()
        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= now - self.window_seconds:
                hits.popleft()
            if len(hits) >= per_minute:
                return False
            hits.append(now)
            return True

    def reset(self):
        with self._lock:
            self._hits.clear()


rate_limiter = RateLimiter()


def reset_rate_limits():
    rate_limiter.reset()


def get_settings(request: Request) -> AppConfig:
    """Settings of the app serving this request (see create_app), else the global config."""
    return getattr(request.app.state, "config", config)


def get_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    authorization: Optional[str] = Header(None)
) -> Optional[str]:
    """Read the key from X-API-Key, falling back to a Bearer token."""
    if x_api_key:
        return x_api_key
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()
    return None


async def verify_api_key(
    request: Request,
    api_key: Optional[str] = Depends(get_api_key)
) -> str:
    """
    Authenticate the caller.

    Returns the presented key, or DEV_CALLER when auth is disabled.
    Raises 401 without a key, 403 for an unknown key and 429 when the
    key exceeds RATE_LIMIT_PER_MINUTE.
    """
    settings = get_settings(request)
    if not settings.auth_required:
        return DEV_CALLER

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing API key. Send it in X-API-Key or as a Bearer token.",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if api_key not in settings.api_keys_list:
        raise HTTPException(status_code=403, detail="Unknown API key")

    limit = settings.RATE_LIMIT_PER_MINUTE
    if limit > 0 and not rate_limiter.allow(api_key, limit):
        raise HTTPException(
            status_code=429,
            detail=f"Too many requests: limit is {limit} per minute for this key",
            headers={"Retry-After": "60"}
        )

    return api_key


async def get_requested_by(
    api_key: str = Depends(verify_api_key),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id")
) -> str:
    """
    Identify the requesting user.

    The admin console forwards its session user in X-User-Id; otherwise
    the caller is identified by a fingerprint of its API key.
    """
    if x_user_id:
        return x_user_id
    if api_key == DEV_CALLER:
        return DEV_CALLER
    return "key:" + hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:12]


def _origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}".lower()


async def require_same_origin(
    request: Request,
    origin: Optional[str] = Header(None),
    referer: Optional[str] = Header(None)
):
    """
    Reject cross-site writes.

    Browsers send Origin on POST; server-to-server callers usually send
    neither header and are let through on the strength of the API key.
    """
    allowed = get_settings(request).allowed_origins_list
    if "*" in allowed:
        return

    source = origin or (referer and _origin_of(referer))
    if not source:
        return

    allowed_origins = {_origin_of(o) for o in allowed}
    allowed_origins.add(_origin_of(str(request.base_url)))
    if _origin_of(source) not in allowed_origins:
        raise HTTPException(status_code=403, detail="Cross-origin request rejected")


require_auth = Depends(verify_api_key)
