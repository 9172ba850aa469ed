# app/core/admin_security.py
"""
Admin Authentication for the reward anomaly endpoints.

Role-based: the bearer JWT must carry role="admin". A valid token with any
other role is a PermissionDenied (403), distinct from authentication
failures (401).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from app.core.config import settings
from app.core.exceptions import PermissionDenied

ADMIN_TOKEN_EXPIRE_MINUTES = 480  # 8 hours for admin sessions

# OAuth2 scheme for admin routes
oauth2_admin_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/admin/login",
    auto_error=True
)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token. The caller supplies the role claim.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ADMIN_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_admin_token(token: str) -> dict:
    """
    Decode and validate admin JWT token.
    Raises 401 if the token is invalid, PermissionDenied if it is not an admin token.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate admin credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("id") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    # Verify this is an admin token (role-based check)
    if payload.get("role") != "admin":
        raise PermissionDenied("Admin access required to view reward anomalies.")

    return payload


async def require_admin(token: str = Depends(oauth2_admin_scheme)) -> dict:
    """
    Dependency that protects admin-only routes.

    Usage:
        @router.get("/admin/reward-anomalies")
        async def anomalies(admin: dict = Depends(require_admin)):
            admin_id = admin["id"]
    """
    payload = decode_admin_token(token)
    return {
        "id": payload.get("id"),
        "email": payload.get("email"),
        "role": "admin"
    }
