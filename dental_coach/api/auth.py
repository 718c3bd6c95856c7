"""Bearer-token authentication for the API.

Identity management lives elsewhere; this only maps a configured token to
the caller's identity (used as ``addedBy`` on knowledge entries).
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dental_coach.config import API_TOKENS

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """Return the caller's identity or raise 401."""
    identity = API_TOKENS.get(credentials.credentials) if credentials else None
    if identity is None:
        logger.info(
            "[%s] Rejected unauthenticated request to %s",
            getattr(request.state, "request_id", "?"), request.url.path,
        )
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
