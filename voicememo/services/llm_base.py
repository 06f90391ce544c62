"""
Voice Memo Backend — Abstract Generation Service Interface
============================================================

What:  Abstract base class for the text generation provider behind the four
       generation endpoints.
How:   Concrete implementations inherit from LLMService and implement the
       four operations. Every operation receives the caller's decrypted
       provider key; implementations hold no credentials of their own.
Who:   Called by the generation routes after the request pipeline has
       resolved the user's key.
"""

from abc import ABC, abstractmethod


class LLMService(ABC):
    """
    Contract:
        - Each operation returns the provider's text, trimmed
        - Provider failures raise UpstreamError (ResponseShapeError when the
          provider answered successfully but without text)
        - No retries: a failed call is reported to the caller once

    Implementations:
        - GeminiService: Google Generative Language REST API
    """

    @abstractmethod
    async def transcribe(self, audio_bytes: bytes, api_key: str) -> str:
        """Transcribe WAV audio to text."""
        ...

    @abstractmethod
    async def translate(self, text: str, target_lang: str, api_key: str) -> str:
        """Translate text into target_lang, returning only the translation."""
        ...

    @abstractmethod
    async def summarize(self, text: str, api_key: str) -> str:
        """Return a concise summary of text."""
        ...

    @abstractmethod
    async def generate_title(self, transcript: str, api_key: str) -> str:
        """Return a 2-4 word title for a memo transcript."""
        ...
