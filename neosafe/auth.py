"""Authentication helpers and role guards."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neosafe.config import settings
from neosafe.database import get_db
from neosafe.models.revoked_token import RevokedToken
from neosafe.models.user import User, UserRole

bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed JWT for a user."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "exp": expire,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user if the credentials match."""
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def get_user_from_token(db: Session, token: str) -> Optional[User]:
    """Resolve a bearer token to a user, or None if it is invalid or revoked."""
    payload = decode_token(token)
    if payload is None:
        return None
    subject = payload.get("sub")
    jti = payload.get("jti")
    if subject is None or not str(subject).isdigit() or not jti:
        return None
    if db.query(RevokedToken).filter(RevokedToken.jti == jti).first():
        return None
    return db.query(User).filter(User.id == int(subject)).first()


def revoke_token(db: Session, token: str, user: User) -> None:
    """Stop a token from authenticating for the rest of its lifetime."""
    payload = decode_token(token)
    if payload is None or not payload.get("jti"):
        return
    db.add(RevokedToken(
        jti=payload["jti"],
        user_id=user.id,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    ))
    try:
        db.commit()
    except IntegrityError:
        # Already revoked by a concurrent logout
        db.rollback()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Authenticate the request; the role is loaded once and fixed for the request."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    user = get_user_from_token(db, credentials.credentials)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return user


def require_role(*roles: UserRole):
    """Build a dependency that only admits the given roles."""
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user
    return role_checker


require_admin = require_role(UserRole.ADMIN)
require_provider = require_role(UserRole.ADMIN, UserRole.PROVIDER)
require_any_role = require_role(UserRole.ADMIN, UserRole.PROVIDER, UserRole.USER)
