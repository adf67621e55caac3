"""
edubridge/security/rbac.py
Bearer-token verification and role-based access control

Tokens are issued by the external identity provider; this module only
verifies them (HS256, `sub` = user id) and loads the directory record.

All route files must use these dependencies. No manual role checks in routes.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import JWTError, jwt

from edubridge.config.settings import settings
from edubridge.database import get_db
from edubridge.orm.user import User, UserRole

logger = logging.getLogger(__name__)

# ================= CONFIG =================

SECRET_KEY = settings.JWT_SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM

bearer_scheme = HTTPBearer(auto_error=False)

VALID_ROLES = {role.value for role in UserRole}


# ================= TOKEN UTILS =================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Encode a token the way the identity provider does.

    Used by tests and local development only.
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "type": "access"
    })
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate JWT token"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    if "role" in payload and payload["role"] not in VALID_ROLES:
        logger.error(f"Invalid role in token: {payload['role']}")
        return None

    return payload


# ================= AUTH DEPENDENCIES =================

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Load the authenticated user.

    401 for a missing/invalid token or unknown user, 403 for inactive or
    not-yet-verified accounts.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise credentials_exception

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    if not user.is_active:
        logger.warning(f"Access denied: user {user.id} is inactive")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    if not user.is_verified:
        logger.warning(f"Access denied: user {user.id} is {user.verification_status.value}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is awaiting verification"
        )

    request.state.user_id = user.id
    request.state.user_role = user.role.value
    return user


# ================= ROLE-BASED DEPENDENCIES =================

def require_lecturer(current_user: User = Depends(get_current_user)) -> User:
    """
    Require lecturer role.
    Use as: Depends(require_lecturer)
    """
    if current_user.role != UserRole.lecturer:
        logger.warning(f"Access denied: user {current_user.id} has role {current_user.role.value}, expected lecturer")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only lecturers can perform this action"
        )
    return current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Require admin role.
    Use as: Depends(require_admin)
    """
    if current_user.role != UserRole.admin:
        logger.warning(f"Access denied: user {current_user.id} has role {current_user.role.value}, expected admin")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can perform this action"
        )
    return current_user


def require_reviewer(current_user: User = Depends(get_current_user)) -> User:
    """Lecturer or admin."""
    if current_user.role not in (UserRole.lecturer, UserRole.admin):
        logger.warning(f"Access denied: user {current_user.id} has role {current_user.role.value}, expected reviewer")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only lecturers and admins can review materials"
        )
    return current_user
