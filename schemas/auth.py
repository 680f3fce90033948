from datetime import datetime
from typing import Optional
from pydantic import BaseModel, validator
from schemas.shared import Role


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None

    @validator('email')
    def validate_email(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if v and ('@' not in v or len(v) > 254):
            raise ValueError('Email address is not valid')
        return v


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: str
    role: Role


class ProfileResponse(UserResponse):
    created_at: datetime


class LoginResponse(UserResponse):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdate(BaseModel):
    email: Optional[str] = None

    @validator('email')
    def validate_email(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if not v or '@' not in v or len(v) > 254:
            raise ValueError('Email address is not valid')
        return v


class RoleUpdate(BaseModel):
    role: Role
