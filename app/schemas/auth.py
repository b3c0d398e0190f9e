from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from app.models.user import UserRole
from app.schemas.base import BaseCreateSchema, BaseResponseSchema


class RegisterRequest(BaseCreateSchema):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    name: str = Field(..., min_length=1, max_length=150)
    role: UserRole = UserRole.USER
    vendor_id: Optional[UUID] = None


class LoginRequest(BaseCreateSchema):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseCreateSchema):
    refresh_token: str


class UserResponse(BaseResponseSchema):
    id: UUID
    email: str
    name: str
    role: str
    vendor_id: Optional[UUID] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TokenResponse(BaseResponseSchema):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
