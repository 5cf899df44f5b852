import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from app.config import settings
from app.errors import AuthenticationError, ForbiddenError
from app.schemas.auth import ADMIN_ROLE, USER_ROLE, Actor

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for JWT token
bearer_scheme = HTTPBearer(
    scheme_name="JWT",
    description="Enter 'Bearer <your_jwt_token>' issued by the identity provider.",
)


def create_access_token(user_id: str, role: str = USER_ROLE, expires_minutes: Optional[int] = None):
    """Create a JWT access token with an expiration time."""
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Actor:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise AuthenticationError(f"Could not validate credentials: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Could not validate credentials")
    role = payload.get("role") or USER_ROLE
    return Actor(user_id=str(user_id), role=role)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Actor:
    """Verify JWT token from Bearer header and return the calling actor."""
    return decode_access_token(credentials.credentials)


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role != ADMIN_ROLE:
        logger.warning(f"User {actor.user_id} denied access to admin endpoint")
        raise ForbiddenError("Administrator access required")
    return actor
