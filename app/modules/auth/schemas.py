from pydantic import BaseModel, Field
from datetime import datetime


class LoginRequest(BaseModel):
    userId: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class SessionContext(BaseModel):
    """Authenticated session carried through request handlers"""
    user_id: str
    expires_at: datetime
