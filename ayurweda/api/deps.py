from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

import redis

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import (
    token_header, bearer_security, verify_token, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload
)
from ..models.user import User

logger = logging.getLogger(__name__)

async def get_current_user_token(
    header_token: Optional[str] = Depends(token_header),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_security)
) -> TokenPayload:
    """Extract and verify the JWT from x-auth-token or the Authorization header."""
    token = header_token or (credentials.credentials if credentials else None)
    if not token:
        raise AuthenticationError("No token, authorization denied")

    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Token is not valid")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if token_payload.user_id is None:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == token_payload.user_id).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthorizationError("User account is deactivated")

    return user

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires specific user roles."""
    async def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return current_user

    return role_checker

get_admin_user = require_role([UserRole.ADMIN])
get_doctor_user = require_role([UserRole.DOCTOR])
get_patient_user = require_role([UserRole.PATIENT])
get_student_user = require_role([UserRole.STUDENT])
get_staff_user = require_role([UserRole.ADMIN, UserRole.DOCTOR])

# Feature switches
def require_feature(flag: str):
    """Create a dependency that refuses requests while a feature is switched off."""
    async def feature_checker() -> None:
        if not getattr(settings, flag):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="This feature is currently disabled"
            )

    return feature_checker

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window rate limiting for authentication endpoints."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    try:
        current_requests = redis_client.incr(key)
        if current_requests == 1:
            redis_client.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS)
    except redis.RedisError as e:
        logger.warning(f"Rate limiter unavailable, allowing request: {e}")
        return

    if current_requests > settings.RATE_LIMIT_MAX_REQUESTS:
        logger.warning(f"Rate limit exceeded for {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later."
        )
