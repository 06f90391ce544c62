"""
Voice Memo Backend — Google Gemini Generation Gateway
=======================================================

What:  Calls the Gemini generateContent REST endpoint for transcription,
       translation, summarization and title generation.
How:   One primitive, invoke(), posts {"contents": [{"parts": [...]}]} with the
       caller's API key as the `key` query parameter and extracts
       candidates[0].content.parts[0].text. Four wrappers build the prompts.
Who:   Generation routes, with a per-user key resolved by the request pipeline.

Failure Handling:
    - Non-2xx status     → UpstreamError, response body included verbatim
    - Timeout / network  → UpstreamError
    - 2xx without text   → ResponseShapeError (raw body preserved)
    Nothing is retried.

Timeout:
    Every call is bounded by settings.gemini_timeout_seconds (default 60s)
    through the httpx client timeout.

The API key is only ever placed in the query string of the outbound request.
httpx request logging is held at WARNING (see main.setup_logging) so the URL
carrying it is not logged.
"""

import base64
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

import httpx

from voicememo.config import settings
from voicememo.exceptions import ResponseShapeError, UpstreamError
from voicememo.services.llm_base import LLMService

logger = logging.getLogger(__name__)

TRANSCRIBE_PROMPT = "Please transcribe this audio."
TRANSCRIBE_MIME_TYPE = "audio/wav"

TRANSLATE_PROMPT = (
    "Translate the following text to {lang}. Return only the translated text "
    "without any extra formatting or explanation:\n\n{text}"
)

SUMMARY_PROMPT = (
    "Provide a concise summary of the following text. Keep it brief and "
    "capture the main points:\n\n{text}"
)

TITLE_PROMPT = (
    "Generate a short, descriptive title (2-4 words) for this voice memo "
    "based on its content. Return only the title:\n\n{transcript}"
)


def extract_text(payload: Any) -> Optional[str]:
    """Returns candidates[0].content.parts[0].text, or None if the shape differs."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class GeminiService(LLMService):
    """
    Args:
        endpoint: Full generateContent URL.
        timeout: Seconds allowed for the whole outbound call.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.gemini_endpoint
        self.timeout = timeout if timeout is not None else settings.gemini_timeout_seconds
        self._transport = transport

    async def invoke(self, parts: List[Dict[str, Any]], api_key: str) -> str:
        """
        Send one content envelope to Gemini and return the first text part.

        Args:
            parts: Gemini content parts ({"text": ...} or {"inline_data": ...}).
            api_key: The caller's decrypted Gemini key.

        Raises:
            UpstreamError: non-success status, timeout or transport failure.
            ResponseShapeError: success status without the expected text field.
        """
        request_id = str(uuid.uuid4())[:8]
        body = {"contents": [{"parts": parts}]}
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, params={"key": api_key}, json=body)
        except httpx.TimeoutException:
            logger.warning("[%s] Gemini call timed out after %.0fs", request_id, self.timeout)
            raise UpstreamError(
                message="Gemini API request timed out",
                context={"request_id": request_id},
            )
        except httpx.HTTPError as e:
            logger.warning("[%s] Gemini transport error: %s", request_id, type(e).__name__)
            raise UpstreamError(
                message=f"Gemini API request failed: {type(e).__name__}",
                context={"request_id": request_id},
            )

        duration_ms = (time.perf_counter() - start_time) * 1000

        if response.is_error:
            logger.warning(
                "[%s] Gemini returned %d after %.0fms",
                request_id,
                response.status_code,
                duration_ms,
            )
            raise UpstreamError(
                message=f"Gemini API request failed: {response.text}",
                status=response.status_code,
                context={"request_id": request_id},
            )

        try:
            text = extract_text(response.json())
        except ValueError:
            text = None
        if text is None:
            logger.warning("[%s] Unexpected Gemini response shape", request_id)
            raise ResponseShapeError(raw=response.text, context={"request_id": request_id})

        logger.info(
            "[%s] Gemini call completed in %.0fms, %d chars",
            request_id,
            duration_ms,
            len(text),
        )
        return text

    async def transcribe(self, audio_bytes: bytes, api_key: str) -> str:
        parts = [
            {"text": TRANSCRIBE_PROMPT},
            {
                "inline_data": {
                    "mime_type": TRANSCRIBE_MIME_TYPE,
                    "data": base64.b64encode(audio_bytes).decode("ascii"),
                }
            },
        ]
        return (await self.invoke(parts, api_key)).strip()

    async def translate(self, text: str, target_lang: str, api_key: str) -> str:
        prompt = TRANSLATE_PROMPT.format(lang=target_lang, text=text)
        return (await self.invoke([{"text": prompt}], api_key)).strip()

    async def summarize(self, text: str, api_key: str) -> str:
        prompt = SUMMARY_PROMPT.format(text=text)
        return (await self.invoke([{"text": prompt}], api_key)).strip()

    async def generate_title(self, transcript: str, api_key: str) -> str:
        prompt = TITLE_PROMPT.format(transcript=transcript)
        return (await self.invoke([{"text": prompt}], api_key)).strip()


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds no per-user state; the key travels with each call.
gemini_service = GeminiService()
