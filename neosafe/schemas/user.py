"""User schemas for request/response validation."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from neosafe.models.user import UserRole
from neosafe.schemas.base import CamelModel


class LoginRequest(BaseModel):
    """Credentials for obtaining a token."""
    email: EmailStr
    password: str


class Token(BaseModel):
    """JWT token schema."""
    access_token: str
    token_type: str


class UserResponse(CamelModel):
    """Schema for user response."""
    id: int
    name: str
    last_name: Optional[str] = None
    email: EmailStr
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProviderResponse(UserResponse):
    """A provider account together with how many boxes it registered."""
    box_count: int = 0


class ProviderUpdate(CamelModel):
    """Schema for an admin editing a provider account."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None

    @field_validator("name", "email", "is_active")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return value


class ProfileUpdate(CamelModel):
    """Schema for users changing their own email or password."""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    password_confirmation: Optional[str] = None

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password is not None and self.password != self.password_confirmation:
            raise ValueError("password confirmation does not match")
        return self
