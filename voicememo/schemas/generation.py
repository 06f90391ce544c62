"""
Voice Memo Backend — Generation Request Schemas
=================================================

What:  Bodies for the four generation endpoints. Responses are plain text.
"""

from pydantic import BaseModel, Field

from voicememo.schemas.memo import AudioBytes


class TranscribeRequest(BaseModel):
    audio_bytes: AudioBytes = Field(description="WAV audio, base64-encoded")


class TranslateRequest(BaseModel):
    lang: str = Field(description="Target language, e.g. 'French'")
    text: str


class SummaryRequest(BaseModel):
    text: str


class GenerateTitleRequest(BaseModel):
    transcript: str
