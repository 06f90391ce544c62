"""
Voice Memo Backend — API Key & Helper Status Schemas
======================================================

What:  Contracts for the per-user credential endpoints. Plaintext keys only
       ever appear in these request/response bodies, never at rest.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ApiKeyPayload(BaseModel):
    """Either key may be omitted; omitted keys keep their stored value."""
    gemini_api_key: Optional[str] = None
    elevenlabs_api_key: Optional[str] = None


class ApiKeyResponse(BaseModel):
    gemini_api_key: Optional[str] = None
    elevenlabs_api_key: Optional[str] = None
    message: str


class HelperStatusPayload(BaseModel):
    status: bool = Field(description="Whether the helper is enabled")


class HelperStatusResponse(BaseModel):
    status: bool
    message: str
