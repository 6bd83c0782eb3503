"""
Grocery Vision Backend — HTTP Route Tests
===========================================

What:  End-to-end tests of the FastAPI app through HTTPX ASGITransport.
How:   The `test_client` fixture overrides the oracle, the detection service
       and the image validator, so requests never leave the process.

What we test:
    ✅ Success envelopes with camelCase keys
    ✅ Empty result is still a success
    ✅ Missing, non-image and oversized uploads
    ✅ Oracle auth failure → 401, other oracle failure → 503
    ✅ GET / and GET /health
    ✅ X-Request-ID propagation
"""

import pytest

from grocery_vision.exceptions import LLMAuthenticationError, LLMServiceError


def _upload(content, filename="fridge.jpg", content_type="image/jpeg"):
    return {"image": (filename, content, content_type)}


class TestDetectItems:
    @pytest.mark.asyncio
    async def test_success_envelope(self, test_client, fake_llm, sample_image_bytes):
        fake_llm.responses = ['[{"itemName": "Milk", "count": 2}, {"itemName": "Eggs", "count": "12"}]']

        response = await test_client.post("/api/detect-items", files=_upload(sample_image_bytes))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Success"
        assert [r["itemName"] for r in body["result"]] == ["Milk", "Eggs"]
        assert [r["count"] for r in body["result"]] == [2, 12]
        assert "timestamp" in body["result"][0]
        assert "item_name" not in body["result"][0]

    @pytest.mark.asyncio
    async def test_unparseable_answer_is_empty_result(self, test_client, fake_llm, sample_image_bytes):
        fake_llm.responses = ["I could not identify any groceries."]

        response = await test_client.post("/api/detect-items", files=_upload(sample_image_bytes))

        assert response.status_code == 200
        assert response.json() == {"message": "Success", "result": []}

    @pytest.mark.asyncio
    async def test_missing_image(self, test_client, fake_llm):
        response = await test_client.post("/api/detect-items")

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Error"
        assert body["error"] == "No image uploaded"
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_non_image_extension(self, test_client, fake_llm):
        response = await test_client.post(
            "/api/detect-items", files=_upload(b"hello", "notes.txt", "text/plain")
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Only image files are allowed!"
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_non_image_content(self, test_client, image_service, sample_image_bytes):
        image_service.mime_type = "application/pdf"

        response = await test_client.post("/api/detect-items", files=_upload(sample_image_bytes))

        assert response.status_code == 400
        assert response.json()["details"]["detected_mime"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_oversized_image(self, test_client, fake_llm):
        content = b"x" * (10 * 1024 * 1024 + 1)

        response = await test_client.post("/api/detect-items", files=_upload(content))

        assert response.status_code == 413
        assert response.json()["error"] == "File too large. Maximum size is 10MB."
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_sniffed_mime_sent_to_oracle(self, test_client, fake_llm, image_service, sample_image_bytes):
        image_service.mime_type = "image/webp"

        await test_client.post("/api/detect-items", files=_upload(sample_image_bytes, "x.webp"))

        assert fake_llm.calls[0][2] == "image/webp"


class TestDetectFreshness:
    @pytest.mark.asyncio
    async def test_success_envelope(self, test_client, fake_llm, sample_image_bytes):
        fake_llm.responses = [
            '[{"produce": "Banana", "freshness": "Ripe", "expectedLifespan": "2-3 days"}]'
        ]

        response = await test_client.post(
            "/api/detect-freshness", files=_upload(sample_image_bytes)
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result[0]["produce"] == "Banana"
        assert result[0]["freshness"] == "Ripe"
        assert result[0]["expectedLifespan"] == "2-3 days"
        assert result[0]["severity"] == "warning"

    @pytest.mark.asyncio
    async def test_no_produce(self, test_client, fake_llm, sample_image_bytes):
        fake_llm.responses = ["[]"]

        response = await test_client.post(
            "/api/detect-freshness", files=_upload(sample_image_bytes)
        )

        assert response.status_code == 200
        assert response.json()["result"] == []

    @pytest.mark.asyncio
    async def test_auth_failure(self, test_client, fake_llm, sample_image_bytes):
        fake_llm.error = LLMAuthenticationError(details="API key not valid")

        response = await test_client.post(
            "/api/detect-freshness", files=_upload(sample_image_bytes)
        )

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "API key issue. Please check your Gemini API key."
        assert body["details"] == "API key not valid"

    @pytest.mark.asyncio
    async def test_oracle_failure(self, test_client, fake_llm, sample_image_bytes):
        fake_llm.error = LLMServiceError(message="API Error: 500 Internal error")

        response = await test_client.post(
            "/api/detect-freshness", files=_upload(sample_image_bytes)
        )

        assert response.status_code == 503
        assert response.json()["error"] == "API Error: 500 Internal error"


class TestHealthRoutes:
    @pytest.mark.asyncio
    async def test_root(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Grocery Vision API is running"
        assert body["status"] == "ok"
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_health_ok(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["gemini"] == "available"

    @pytest.mark.asyncio
    async def test_health_degraded(self, test_client, fake_llm):
        fake_llm.healthy = False

        body = (await test_client.get("/health")).json()

        assert body["status"] == "degraded"
        assert body["gemini"] == "unavailable"

    @pytest.mark.asyncio
    async def test_health_unconfigured(self, test_client, fake_llm):
        fake_llm.configured = False

        body = (await test_client.get("/health")).json()

        assert body["status"] == "degraded"
        assert body["gemini"] == "unconfigured"


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated(self, test_client):
        response = await test_client.get("/")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_id_echoed_in_header_and_error(self, test_client):
        response = await test_client.post(
            "/api/detect-items", headers={"X-Request-ID": "trace-42"}
        )

        assert response.headers["X-Request-ID"] == "trace-42"
        assert response.json()["request_id"] == "trace-42"
