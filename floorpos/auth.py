# auth.py

"""Staff authentication with argon2 password hashes and JWT bearer tokens."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel

from .config import get_settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

ADMIN = "ADMIN"
WAITER = "WAITER"
KITCHEN = "KITCHEN"
ROLES = (ADMIN, WAITER, KITCHEN)

ph = PasswordHasher()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login")


class Token(BaseModel):
    """JWT access token returned after authentication."""

    access_token: str
    token_type: str = "bearer"
    role: str | None = None


class User(BaseModel):
    """Authenticated staff member."""

    username: str
    name: str
    role: str


class UserInDB(User):
    password_hash: str


# In-memory staff directory; a real deployment would query a database
fake_users_db: dict[str, UserInDB] = {
    "admin": UserInDB(
        username="admin",
        name="Admin User",
        role=ADMIN,
        password_hash=ph.hash("adminpass"),
    ),
    "waiter1": UserInDB(
        username="waiter1",
        name="John Waiter",
        role=WAITER,
        password_hash=ph.hash("waiterpass"),
    ),
    "kitchen1": UserInDB(
        username="kitchen1",
        name="Chef Mike",
        role=KITCHEN,
        password_hash=ph.hash("kitchenpass"),
    ),
}


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored hash."""

    try:
        return ph.verify(hashed_password, plain_password)
    except VerifyMismatchError:
        return False
    except VerificationError as exc:  # pragma: no cover - unexpected
        logger.error("argon2 verification error: %s", exc)
        raise


def authenticate_user(username: str, password: str) -> Optional[UserInDB]:
    """Return user if credentials match, else ``None``."""

    user = fake_users_db.get(username)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT containing the provided claims."""

    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    """Resolve the user from a bearer token or raise ``HTTPException``."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        raise credentials_exception from None
    username = payload.get("sub")
    if username is None or payload.get("role") is None:
        raise credentials_exception
    user = fake_users_db.get(username)
    if user is None:
        raise credentials_exception
    return User(username=user.username, name=user.name, role=user.role)


def role_required(*roles: str):
    """Dependency factory enforcing that the current user has one of ``roles``."""

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient privileges"
            )
        return user

    return dependency
