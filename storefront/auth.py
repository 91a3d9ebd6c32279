import logging
import os
import time
from typing import List, NamedTuple, Optional

import jwt
from fastapi import HTTPException, Request
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .repositories import UserRepository

logger = logging.getLogger(__name__)

# Use pbkdf2_sha256 as default to avoid bcrypt 72-byte limitation in some envs
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

SECRET = os.getenv("JWT_SECRET", "dev-secret")
ALGORITHM = "HS256"
EXP_SECONDS = 60 * 60 * 24  # 1 day

ROLE_PREFIX = "ROLE_"
ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"


class Principal(NamedTuple):
    id: str
    username: str
    roles: frozenset


def create_access_token(user_id: str, roles: List[str], expires_delta: Optional[int] = None) -> str:
    now = int(time.time())
    exp = now + (expires_delta or EXP_SECONDS)
    payload = {"sub": str(user_id), "roles": sorted(roles), "iat": now, "exp": exp}
    token = jwt.encode(payload, SECRET, algorithm=ALGORITHM)
    return token


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, SECRET, algorithms=[ALGORITHM])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def resolve_principal(request: Request, db: Session) -> Principal:
    """Identify the caller from the ``Authorization: Bearer <jwt>`` header.

    Roles are read from the stored user rather than the token so that a role
    change takes effect on the next request. Raises 401 when the header is
    missing, the token does not verify, or the user no longer exists.
    """
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    token = auth.split(None, 1)[1]
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError as e:
        logger.warning("rejected token: %s", e)
        raise HTTPException(status_code=401, detail="invalid token")

    user_id = payload.get("sub")
    user = UserRepository(db).find_by_id(user_id) if user_id else None
    if not user:
        raise HTTPException(status_code=401, detail="user not found")
    return Principal(id=user.id, username=user.username, roles=frozenset(user.roles or ()))


def has_role(principal: Principal, role: str) -> bool:
    if not role.startswith(ROLE_PREFIX):
        role = ROLE_PREFIX + role
    return role in principal.roles


def require_role(principal: Principal, *roles: str) -> Principal:
    """Guard clause: pass when the caller holds at least one of ``roles``."""
    if any(has_role(principal, r) for r in roles):
        return principal
    logger.warning("user %s denied: requires one of %s", principal.username, ", ".join(roles))
    raise HTTPException(status_code=403, detail="forbidden")
