"""Schemas for the session endpoints and the resolved identity."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.common import AuthState, UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class IdentityOut(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None
    role: Optional[UserRole] = None


class SessionStateOut(BaseModel):
    state: AuthState
    identity: Optional[IdentityOut] = None
    is_authenticated: bool
    is_admin: bool
    is_bda: bool
    last_error: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: SessionStateOut
