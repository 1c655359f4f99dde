"""Access token helpers.

The portal login handshake happens outside this package; it only has to
produce the opaque token the portal expects in ``X-Access-Token``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

TOKEN_ENV = "SECOND_CLASS_ACCESS_TOKEN"
CACHE_PATH = Path(os.path.expanduser("~/.cache/second_class/token"))


def _load_cache() -> str | None:
    if not CACHE_PATH.exists():
        return None
    try:
        token = CACHE_PATH.read_text(encoding="utf-8").strip()
    except OSError as exc:  # pragma: no cover - unreadable cache is rare
        logging.warning("Failed to read token cache: %s", exc)
        return None
    return token or None


def save_token(token: str) -> None:
    CACHE_PATH.parent.mkdir(parents=True, exist_ok=True)
    CACHE_PATH.write_text(token, encoding="utf-8")
    CACHE_PATH.chmod(0o600)


def acquire_token() -> str:
    # Prefer env var if present
    token = os.getenv(TOKEN_ENV)
    if token:
        return token

    token = _load_cache()
    if token:
        logging.debug("Using cached token from %s", CACHE_PATH)
        return token

    raise RuntimeError(f"Could not obtain access token (set {TOKEN_ENV})")
