"""
Bearer token authentication shared by the user and task routes.
"""
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from services.auth_service import decode_access_token
from services.user_service import find_by_token

security = HTTPBearer(auto_error=False)

AUTH_ERROR = "Please authenticate."


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=AUTH_ERROR,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency resolving the caller from the Authorization header.

    Every failure (no header, wrong scheme, bad signature, unknown user or
    a token that has been logged out) produces the same 401 response.

    Returns:
        Dict with the user document under "user" and the raw token
        under "token"
    """
    if credentials is None:
        raise _unauthorized()

    token = credentials.credentials
    payload = decode_access_token(token)
    if payload is None or "id" not in payload:
        raise _unauthorized()

    user = find_by_token(payload["id"], token)
    if user is None:
        raise _unauthorized()

    return {"user": user, "token": token}
