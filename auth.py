import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Cookie, HTTPException, Response
from jose import JWTError, jwt

from config import settings

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify `token`. Raises JWTError on a bad signature or an expired token."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def verify_token(token: Optional[str] = Cookie(default=None)) -> Dict[str, Any]:
    """
    Gate for protected routes.

    403 when the token cookie is missing, 401 when it does not verify.
    Returns the decoded payload (userId, username, email).
    """
    if not token:
        logger.info("Rejected request without token cookie")
        raise HTTPException(status_code=403, detail="A token is required for authentication")
    credentials_exception = HTTPException(status_code=401, detail="Invalid Token")
    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.warning("Rejected invalid token: %s", e)
        raise credentials_exception
    if not payload.get("userId"):
        logger.warning("Rejected token without userId")
        raise credentials_exception
    return payload


def set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure_effective,
        samesite=settings.cookie_samesite,
    )


def clear_token_cookie(response: Response) -> None:
    response.delete_cookie(
        key=TOKEN_COOKIE,
        httponly=True,
        secure=settings.cookie_secure_effective,
        samesite=settings.cookie_samesite,
    )
