from pydantic import BaseModel, EmailStr, validator
from typing import Optional
from datetime import datetime
from enum import Enum

class Role(str, Enum):
    """Roles a user profile can carry"""
    STUDENT = "student"
    ADMIN = "admin"

class UserBase(BaseModel):
    email: EmailStr
    full_name: str
    phone: str

class UserCreate(UserBase):
    password: str

    @validator('full_name', 'phone')
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('must not be empty')
        return v.strip()

    @validator('password')
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters')
        return v

class User(UserBase):
    id: str
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class AuthResponse(BaseModel):
    user: User
    token: str
    token_type: str = "bearer"

class TokenData(BaseModel):
    user_id: str
    email: Optional[str] = None

class PromoteUserRequest(BaseModel):
    secret: str
    user_id: str
