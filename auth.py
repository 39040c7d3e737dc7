import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config
from errors import AuthError, ForbiddenError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def check_password(stored: Optional[str], supplied: Optional[str]) -> bool:
    """Compare a stored credential with the one supplied at login.

    Passwords are stored in plaintext; every credential check goes through
    here so a hashed scheme only has to change this function.
    """
    if stored is None or supplied is None:
        return False
    return hmac.compare_digest(str(stored).encode(), str(supplied).encode())


def create_token(user: dict) -> str:
    exp = datetime.now(timezone.utc) + timedelta(days=config.TOKEN_TTL_DAYS)
    to_encode = {"id": user["id"], "username": user["username"], "role": user["role"], "exp": exp}
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGO)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")


def require_roles(*roles: str):
    """Capability check for staff/admin operations.

    Off unless ENFORCE_ROLES is set, in which case the caller must present
    a bearer token for one of ``roles``.
    """
    def dependency(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    ) -> Optional[dict]:
        if not config.ENFORCE_ROLES:
            return None
        if credentials is None:
            raise AuthError("Authentication required")
        payload = decode_token(credentials.credentials)
        if payload.get("role") not in roles:
            logger.warning("Denied %s role for operation limited to %s", payload.get("role"), ", ".join(roles))
            raise ForbiddenError("Your role does not have access to this feature")
        return payload

    return dependency
