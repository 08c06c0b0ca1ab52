"""Auth service wire models"""
from typing import Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    provider: str  # auth provider name, 'password' by default
    identifier: str  # email address
    credentials: str  # plaintext password


class UserResponse(BaseModel):
    user_id: str
    display_name: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user: UserResponse
