from __future__ import annotations

import hmac
import logging

from fastapi import Header, HTTPException
from .config import settings

logger = logging.getLogger(__name__)


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")):
    """Reject tool calls without the configured key. No key configured = open access."""
    if not settings.api_key:
        return
    if x_api_key is None or not hmac.compare_digest(x_api_key, settings.api_key):
        logger.warning("Rejected tool call with missing or invalid API key")
        raise HTTPException(status_code=401, detail="Invalid API key")
