"""Authentication and profile routes."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from neosafe.auth import (
    authenticate_user,
    bearer_scheme,
    create_access_token,
    get_current_user,
    revoke_token,
)
from neosafe.database import get_db
from neosafe.dependencies import get_account_service
from neosafe.models.user import User
from neosafe.schemas.user import LoginRequest, ProfileUpdate, Token, UserResponse
from neosafe.services.accounts import AccountService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return Token(access_token=create_access_token(user), token_type="bearer")


@router.post("/logout")
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Revoke the token used for this request."""
    revoke_token(db, credentials.credentials, current_user)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return current_user


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Return the caller's own profile."""
    return current_user


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    profile: ProfileUpdate,
    service: AccountService = Depends(get_account_service),
    current_user: User = Depends(get_current_user)
):
    """Change the caller's email and/or password."""
    return service.update_profile(current_user, email=profile.email, password=profile.password)
