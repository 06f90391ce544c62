"""
Voice Memo Backend — Account Schemas
======================================

What:  Request/response contracts for signup and login.
Validation (signup): username >= 3 chars, syntactically valid email,
password >= 8 chars. Violations are reported as 400 with the constraint.
"""

from pydantic import BaseModel, EmailStr, Field


class SignupRequest(BaseModel):
    username: str = Field(
        min_length=3,
        description="Display name (at least 3 characters)",
    )
    email: EmailStr = Field(description="Login email; must be unique")
    password: str = Field(
        min_length=8,
        description="Password (at least 8 characters)",
    )


class SignupResponse(BaseModel):
    message: str = Field(default="User created successfully")
    user_id: str = Field(description="UUID of the new account")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    message: str = Field(default="Login Successful")
    token: str = Field(description="Bearer token valid for 24 hours")
