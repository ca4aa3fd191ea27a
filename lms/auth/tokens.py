# lms/auth/tokens.py
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Header
from jose import jwt, JWTError, ExpiredSignatureError

from lms.config import get_config
from lms.errors import Unauthenticated, InvalidToken


def create_access_token(email: str, name: Optional[str], role: str) -> str:
    """Sign {email, name, role} with the configured expiry"""
    config = get_config()
    now = datetime.utcnow()
    claims = {
        "email": email,
        "name": name,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=config.TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(claims, config.ACCESS_TOKEN_SECRET, algorithm=config.TOKEN_ALGORITHM)


def decode_access_token(token: str) -> dict:
    config = get_config()
    try:
        payload = jwt.decode(token, config.ACCESS_TOKEN_SECRET, algorithms=[config.TOKEN_ALGORITHM])
    except ExpiredSignatureError:
        raise InvalidToken("Token expired")
    except JWTError:
        raise InvalidToken("Forbidden access - Invalid token")

    if not payload.get("email"):
        raise InvalidToken("Token missing email claim")
    return payload


def verify_access_token(authorization: str = Header(None)) -> dict:
    """
    Authenticated gate: Bearer header required, returns decoded claims
    """
    if not authorization:
        raise Unauthenticated("No authorization token provided")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Invalid authorization format")

    return decode_access_token(token.strip())
