"""
Voice Memo Backend — End-to-End API Tests
===========================================

What:  Full HTTP flows through the FastAPI app: middleware, request pipeline,
       services and exception handlers, against in-memory SQLite.

What we test:
    ✅ signup → login → save → list → delete → list empty
    ✅ Request pipeline outcomes: missing / invalid token, bad subject
    ✅ Memo ownership across two accounts
    ✅ API key save / get / delete round trip
    ✅ Generation endpoints answer in plain text, errors included
"""

import base64
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from voicememo.exceptions import UpstreamError
from voicememo.services.user_service import normalize_email


async def register(client, username="alice", email="alice@x.com", password="password1") -> dict:
    """Signs up and logs in; returns the Authorization header."""
    response = await client.post(
        "/api/signup",
        json={"username": username, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    response = await client.post("/api/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestAccounts:

    @pytest.mark.asyncio
    async def test_signup_and_login(self, test_client, token_codec):
        response = await test_client.post(
            "/api/signup",
            json={"username": "alice", "email": "alice@x.com", "password": "password1"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created successfully"
        user_id = body["user_id"]

        response = await test_client.post(
            "/api/login", json={"email": "alice@x.com", "password": "password1"}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Login Successful"
        claims = token_codec.verify(response.json()["token"])
        assert claims.sub == user_id
        assert claims.username == "alice"
        assert claims.email == "alice@x.com"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, test_client):
        await register(test_client)
        response = await test_client.post(
            "/api/signup",
            json={"username": "alice2", "email": "alice@x.com", "password": "password2"},
        )
        assert response.status_code == 409
        assert response.json()["message"] == "User with this email already exists"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"username": "al", "email": "alice@x.com", "password": "password1"},
            {"username": "alice", "email": "not-an-email", "password": "password1"},
            {"username": "alice", "email": "alice@x.com", "password": "short"},
        ],
    )
    async def test_signup_validation(self, test_client, payload):
        response = await test_client.post("/api/signup", json=payload)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email, password",
        [("alice@x.com", "wrong-password"), ("nobody@x.com", "password1")],
    )
    async def test_bad_credentials(self, test_client, email, password):
        await register(test_client)
        response = await test_client.post("/api/login", json={"email": email, "password": password})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"


    @pytest.mark.asyncio
    async def test_mixed_case_email_logs_in_as_sent(self, test_client, token_codec):
        response = await test_client.post(
            "/api/signup",
            json={"username": "alice", "email": "Alice@Example.COM", "password": "password1"},
        )
        assert response.status_code == 201

        response = await test_client.post(
            "/api/login", json={"email": "Alice@Example.COM", "password": "password1"}
        )
        assert response.status_code == 200
        assert token_codec.verify(response.json()["token"]).email == "Alice@example.com"

        response = await test_client.post(
            "/api/login", json={"email": "Alice@example.com", "password": "password1"}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_check_ignores_domain_case(self, test_client):
        await register(test_client, email="alice@x.com")
        response = await test_client.post(
            "/api/signup",
            json={"username": "alice2", "email": "alice@X.COM", "password": "password2"},
        )
        assert response.status_code == 409


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Alice@Example.COM", "Alice@example.com"),
        ("  bob@x.com ", "bob@x.com"),
        ("no-at-sign", "no-at-sign"),
    ],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


class TestRequestPipeline:

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/get_memos")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/get_memos", headers={"Authorization": "Bearer not.a.token"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_non_uuid_subject(self, test_client, token_codec):
        token = token_codec.issue("user-42", "alice", "alice@x.com")
        response = await test_client.get(
            "/api/get_memos", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid user ID format in token"

    @pytest.mark.asyncio
    async def test_unknown_subject(self, test_client, token_codec):
        user_id = uuid4()
        token = token_codec.issue(str(user_id), "ghost", "ghost@x.com")
        response = await test_client.get(
            "/api/get_memos", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 404
        assert response.json()["message"] == f"User {user_id} not found"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestMemoFlow:

    @pytest.mark.asyncio
    async def test_save_list_delete(self, test_client):
        headers = await register(test_client)

        response = await test_client.post(
            "/api/save_memo", json={"title": "Idea", "duration": "00:05"}, headers=headers
        )
        assert response.status_code == 200
        memo_id = response.json()["memo_id"]

        response = await test_client.get("/api/get_memos", headers=headers)
        memos = response.json()
        assert len(memos) == 1
        assert memos[0]["id"] == memo_id
        assert memos[0]["title"] == "Idea"
        assert memos[0]["created_at"]

        response = await test_client.delete(f"/api/delete_memo/{memo_id}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Memo deleted", "memo_id": memo_id}

        response = await test_client.delete(f"/api/delete_memo/{memo_id}", headers=headers)
        assert response.status_code == 404

        response = await test_client.get("/api/get_memos", headers=headers)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_audio_round_trip_and_partial_update(self, test_client):
        headers = await register(test_client)
        audio = base64.b64encode(b"\x00\x01wav-bytes").decode()

        response = await test_client.post(
            "/api/save_memo",
            json={"title": "Call", "duration": "01:00", "tags": ["work"], "audio_blob": audio},
            headers=headers,
        )
        memo_id = response.json()["memo_id"]

        response = await test_client.patch(
            f"/api/update_memo/{memo_id}", json={"summary": "notes", "tags": []}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Memo updated successfully"

        memo = (await test_client.get(f"/api/get_memo/{memo_id}", headers=headers)).json()
        assert memo["summary"] == "notes"
        assert memo["tags"] == []
        assert memo["title"] == "Call"
        assert memo["audio_blob"] == audio

    @pytest.mark.asyncio
    async def test_missing_title_is_bad_request(self, test_client):
        headers = await register(test_client)
        response = await test_client.post(
            "/api/save_memo", json={"title": " ", "duration": "00:05"}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Title and duration are required"

    @pytest.mark.asyncio
    async def test_ownership_between_accounts(self, test_client):
        alice = await register(test_client)
        bob = await register(test_client, "bob", "bob@x.com")

        response = await test_client.post(
            "/api/save_memo", json={"title": "Private", "duration": "00:05"}, headers=alice
        )
        memo_id = response.json()["memo_id"]

        assert (await test_client.get(f"/api/get_memo/{memo_id}", headers=bob)).status_code == 404
        assert (await test_client.delete(f"/api/delete_memo/{memo_id}", headers=bob)).status_code == 404

        response = await test_client.post(
            "/api/save_memo",
            json={"id": memo_id, "title": "Mine", "duration": "00:01"},
            headers=bob,
        )
        assert response.status_code == 403

        memo = (await test_client.get(f"/api/get_memo/{memo_id}", headers=alice)).json()
        assert memo["title"] == "Private"

    @pytest.mark.asyncio
    async def test_delete_all(self, test_client):
        headers = await register(test_client)
        response = await test_client.delete("/api/delete_all_memos", headers=headers)
        assert response.json() == {"message": "Deleted 0 memo(s)", "deleted_count": 0}

        for title in ("a", "b"):
            await test_client.post(
                "/api/save_memo", json={"title": title, "duration": "1"}, headers=headers
            )
        response = await test_client.delete("/api/delete_all_memos", headers=headers)
        assert response.json()["deleted_count"] == 2


class TestApiKeys:

    @pytest.mark.asyncio
    async def test_save_get_delete(self, test_client):
        headers = await register(test_client)

        response = await test_client.get("/api/api_keys/get", headers=headers)
        assert response.status_code == 404

        response = await test_client.post(
            "/api/api_keys/save", json={"gemini_api_key": "g-123"}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["message"] == "API keys saved successfully"

        keys = (await test_client.get("/api/api_keys/get", headers=headers)).json()
        assert keys["gemini_api_key"] == "g-123"
        assert keys["elevenlabs_api_key"] is None

        response = await test_client.delete("/api/api_keys/gemini", headers=headers)
        assert response.json() == {"message": "Gemini API key deleted successfully"}

        keys = (await test_client.get("/api/api_keys/get", headers=headers)).json()
        assert keys["gemini_api_key"] is None
        assert keys["elevenlabs_api_key"] is None

    @pytest.mark.asyncio
    async def test_helper_status(self, test_client):
        headers = await register(test_client)

        response = await test_client.get("/api/helper/status", headers=headers)
        assert response.json()["status"] is False

        response = await test_client.post("/api/helper/status", json={"status": True}, headers=headers)
        assert response.json() == {"status": True, "message": "Helper status updated successfully"}

        response = await test_client.get("/api/helper/status", headers=headers)
        assert response.json()["status"] is True


class TestGeneration:

    @pytest.mark.asyncio
    async def test_without_stored_key(self, test_client, fake_generation):
        headers = await register(test_client)

        response = await test_client.post("/api/summary", json={"text": "hello"}, headers=headers)

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Gemini API key not found for this user"
        assert fake_generation.calls == []

    @pytest.mark.asyncio
    async def test_endpoints_use_callers_key(self, test_client, fake_generation, sample_wav_bytes):
        headers = await register(test_client)
        await test_client.post("/api/api_keys/save", json={"gemini_api_key": "g-123"}, headers=headers)

        response = await test_client.post(
            "/api/translate", json={"text": "Hello", "lang": "French"}, headers=headers
        )
        assert response.status_code == 200
        assert response.text == "[French] Hello"

        response = await test_client.post(
            "/api/transcribe",
            json={"audio_bytes": base64.b64encode(sample_wav_bytes).decode()},
            headers=headers,
        )
        assert response.text == "hello from the recording"

        response = await test_client.post(
            "/api/generate_memo_name", json={"transcript": "milk eggs"}, headers=headers
        )
        assert response.text == "Morning Idea"

        assert [call[0] for call in fake_generation.calls] == ["translate", "transcribe", "generate_title"]
        assert all(call[2] == "g-123" for call in fake_generation.calls)
        assert fake_generation.calls[1][1][0] == sample_wav_bytes

    @pytest.mark.asyncio
    async def test_upstream_failure_is_plain_text(self, test_client, fake_generation):
        headers = await register(test_client)
        await test_client.post("/api/api_keys/save", json={"gemini_api_key": "g-123"}, headers=headers)
        fake_generation.summarize = AsyncMock(
            side_effect=UpstreamError(message="Gemini API request failed: quota exceeded", status=429)
        )

        response = await test_client.post("/api/summary", json={"text": "hello"}, headers=headers)

        assert response.status_code == 502
        assert response.text == "Gemini API request failed: quota exceeded"

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        response = await test_client.post("/api/summary", json={"text": "hello"})
        assert response.status_code == 401


@pytest.mark.asyncio
async def test_health(test_client):
    response = await test_client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
