"""
Bearer Token Check

The QA and stored-document routes can be protected by a single shared
bearer token (``settings.api_bearer_token``). When no token is configured
the routes are open.
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import settings


# ---------------------------------------------------------------------
# Security Scheme
# ---------------------------------------------------------------------

# auto_error=False: a missing header is only an error when a token is configured
security = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------
# Public Authentication Dependency
# ---------------------------------------------------------------------

def require_api_token(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """
    Reject the request unless it carries the configured bearer token.

    Raises
    ------
    HTTPException(401) for a missing or mismatched token.
    """
    expected = settings.api_bearer_token
    if expected is None:
        return

    if creds is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not hmac.compare_digest(creds.credentials, expected.get_secret_value()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
