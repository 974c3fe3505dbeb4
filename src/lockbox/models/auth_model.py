'''
Pydantic models for account registration and login
'''
from pydantic import BaseModel, EmailStr, Field, validator
from datetime import datetime
from lockbox.config import settings


class RegisterRequest(BaseModel):
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., description="Login password (not the master password)")

    @validator('email')
    def normalize_email(cls, v):
        return v.lower().strip()

    @validator('password')
    def validate_password(cls, v):
        if len(v) < settings.MIN_ACCOUNT_PASSWORD_LENGTH:
            raise ValueError(
                f'Password must be at least {settings.MIN_ACCOUNT_PASSWORD_LENGTH} characters'
            )
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Account email")
    password: str = Field(..., min_length=1, description="Login password")

    @validator('email')
    def normalize_email(cls, v):
        return v.lower().strip()


class UserResponse(BaseModel):
    id: int
    email: str
    created_at: datetime


class AuthResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse
    hasVault: bool
    hasMasterPassword: bool
