from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from schemas.common import ORMBase

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    name: str = Field(min_length=1)
    password: str = Field(min_length=6)

# Schema for email verification with a one-time code
class OtpVerify(UserBase):
    otp: str

class OtpResend(UserBase):
    pass

# Output schema for user profile details
class UserResponse(ORMBase):
    id: int
    name: str
    email: EmailStr
    role: str
    is_verified: bool
    created_at: Optional[datetime] = None

# Login result: bearer token plus the profile
class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse
