"""
Voice Memo Backend — Gemini Gateway Tests (Mocked Transport)
==============================================================

What:  GeminiService against httpx.MockTransport; no network calls.

What we test:
    ✅ Request shape: key as query parameter, single content envelope
    ✅ Text extraction and trimming in each wrapper
    ✅ Prompt wording for translate / summary / title
    ✅ Inline audio part for transcription
    ✅ Error status → UpstreamError with body verbatim
    ✅ Missing text → ResponseShapeError with raw body
    ✅ Timeout → UpstreamError, no retry
"""

import base64
import json

import httpx
import pytest

from voicememo.exceptions import ResponseShapeError, UpstreamError
from voicememo.services.gemini_service import GeminiService, extract_text

ENDPOINT = "https://gemini.test/v1beta/models/gemini-2.0-flash:generateContent"


def ok_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


class Recorder:
    """MockTransport handler that stores requests and replays one response."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def body(self) -> dict:
        return json.loads(self.requests[-1].content)


def make_service(recorder) -> GeminiService:
    return GeminiService(endpoint=ENDPOINT, timeout=5, transport=httpx.MockTransport(recorder))


class TestInvoke:

    @pytest.mark.asyncio
    async def test_request_shape(self):
        recorder = Recorder(httpx.Response(200, json=ok_body("hi")))
        service = make_service(recorder)

        result = await service.invoke([{"text": "hello"}], "user-key")

        assert result == "hi"
        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.params["key"] == "user-key"
        assert str(request.url).startswith(ENDPOINT)
        assert recorder.body == {"contents": [{"parts": [{"text": "hello"}]}]}

    @pytest.mark.asyncio
    async def test_error_status_carries_body(self):
        recorder = Recorder(httpx.Response(400, text='{"error": "API key not valid"}'))
        service = make_service(recorder)

        with pytest.raises(UpstreamError) as exc_info:
            await service.invoke([{"text": "hello"}], "bad-key")

        assert exc_info.value.message == 'Gemini API request failed: {"error": "API key not valid"}'
        assert exc_info.value.status == 400
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"candidates": []},
            {"candidates": [{"content": {"parts": []}}]},
            {"promptFeedback": {"blockReason": "SAFETY"}},
        ],
    )
    async def test_missing_text_is_shape_error(self, body):
        recorder = Recorder(httpx.Response(200, json=body))

        with pytest.raises(ResponseShapeError) as exc_info:
            await make_service(recorder).invoke([{"text": "hello"}], "k")

        assert json.loads(exc_info.value.raw) == body
        assert exc_info.value.message.startswith("Failed to parse Gemini API response. Full response: ")

    @pytest.mark.asyncio
    async def test_non_json_success_is_shape_error(self):
        recorder = Recorder(httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ResponseShapeError) as exc_info:
            await make_service(recorder).invoke([{"text": "hello"}], "k")
        assert exc_info.value.raw == "<html>oops</html>"

    @pytest.mark.asyncio
    async def test_timeout_is_upstream_error_without_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        service = GeminiService(endpoint=ENDPOINT, timeout=1, transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError):
            await service.invoke([{"text": "hello"}], "k")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connection_error_is_upstream_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        service = GeminiService(endpoint=ENDPOINT, timeout=1, transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError) as exc_info:
            await service.invoke([{"text": "hello"}], "k")
        assert "ConnectError" in exc_info.value.message


class TestWrappers:

    @pytest.mark.asyncio
    async def test_transcribe_sends_inline_wav(self, sample_wav_bytes):
        recorder = Recorder(httpx.Response(200, json=ok_body("  spoken words \n")))

        result = await make_service(recorder).transcribe(sample_wav_bytes, "k")

        assert result == "spoken words"
        parts = recorder.body["contents"][0]["parts"]
        assert parts[0] == {"text": "Please transcribe this audio."}
        assert parts[1]["inline_data"]["mime_type"] == "audio/wav"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == sample_wav_bytes

    @pytest.mark.asyncio
    async def test_translate_prompt(self):
        recorder = Recorder(httpx.Response(200, json=ok_body("Bonjour\n")))

        result = await make_service(recorder).translate("Hello", "French", "k")

        assert result == "Bonjour"
        prompt = recorder.body["contents"][0]["parts"][0]["text"]
        assert prompt.startswith("Translate the following text to French.")
        assert prompt.endswith("\n\nHello")

    @pytest.mark.asyncio
    async def test_summary_prompt(self):
        recorder = Recorder(httpx.Response(200, json=ok_body(" gist ")))

        result = await make_service(recorder).summarize("long text", "k")

        assert result == "gist"
        prompt = recorder.body["contents"][0]["parts"][0]["text"]
        assert prompt.startswith("Provide a concise summary")
        assert prompt.endswith("long text")

    @pytest.mark.asyncio
    async def test_title_prompt(self):
        recorder = Recorder(httpx.Response(200, json=ok_body("Grocery List\n")))

        result = await make_service(recorder).generate_title("buy milk and eggs", "k")

        assert result == "Grocery List"
        prompt = recorder.body["contents"][0]["parts"][0]["text"]
        assert "(2-4 words)" in prompt
        assert prompt.endswith("buy milk and eggs")


def test_extract_text_rejects_non_string():
    assert extract_text({"candidates": [{"content": {"parts": [{"text": 5}]}}]}) is None
    assert extract_text(["not", "a", "dict"]) is None
