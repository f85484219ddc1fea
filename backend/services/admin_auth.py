"""
Admin Authentication for Support Desk.

A single shared bearer token (ADMIN_TOKEN) protects the admin API. While
no token is configured every admin endpoint answers 503 so a fresh
deployment is never left open.
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import runtime_config

logger = logging.getLogger(__name__)

# Optional Bearer token extractor (doesn't auto-raise on missing)
_bearer_scheme = HTTPBearer(auto_error=False)


def check_admin_token(token: Optional[str]) -> bool:
    """Constant-time comparison against the configured admin token."""
    expected = runtime_config.admin_token
    if not expected or not token:
        return False
    return secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


async def verify_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> bool:
    """
    Centralized admin auth dependency.

    Raises:
        HTTPException 503 if no admin token is configured
        HTTPException 401 if the bearer token is missing or wrong
    """
    if not runtime_config.admin_token:
        raise HTTPException(
            status_code=503,
            detail="Admin API disabled. Set ADMIN_TOKEN to enable it.",
        )

    if credentials and check_admin_token(credentials.credentials):
        return True

    logger.warning("Rejected admin request with missing or invalid token")
    raise HTTPException(
        status_code=401,
        detail="Invalid or missing admin token",
        headers={"WWW-Authenticate": "Bearer"},
    )
