"""
FastAPI dependencies for authentication.

Tokens are issued by the external identity provider; this service only
verifies them and turns the claims into an explicit caller identity.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt, ExpiredSignatureError

from .config import get_settings
from .schemas.auth import TokenPayload

ALLOWED_JWT_ALGORITHMS = ("HS256",)

security = HTTPBearer()


async def get_current_active_user(
    token: HTTPAuthorizationCredentials = Depends(security),
) -> TokenPayload:
    """Validate the bearer JWT and return the caller identity"""
    return verify_token(token.credentials)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token; used by tooling and tests"""
    settings = get_settings()
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({
        "exp": expire,
        "jti": str(uuid.uuid4()),
        "iat": datetime.utcnow()
    })
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.algorithm)


def verify_token(token: str) -> TokenPayload:
    """Verify JWT token and return token data"""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=list(ALLOWED_JWT_ALGORITHMS),
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "require_exp": True,
            },
        )
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username = payload.get("sub")
    user_id = payload.get("user_id")
    if not username or not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token - missing required claims",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token - malformed user_id",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenPayload(
        username=username,
        user_id=user_uuid,
        jti=payload.get("jti"),
        exp=payload.get("exp"),
    )
