from __future__ import annotations

import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from gemini_gateway.common.errors import CapabilityError
from gemini_gateway.common.prompts import DEFAULT_PROMPTS
from gemini_gateway.common.schema import Attachment
from gemini_gateway.common.settings import Settings
from gemini_gateway.serve.capability import GeminiCapability
from gemini_gateway.serve.fastapi_app import create_app


class _StubCapability:
    def __init__(self, text: str = "T", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple[str, Attachment | None]] = []

    async def generate(self, prompt: str, attachment: Attachment | None = None) -> str:
        self.calls.append((prompt, attachment))
        if self.error is not None:
            raise self.error
        return self.text


def _client(stub: _StubCapability) -> TestClient:
    return TestClient(create_app(Settings(api_key="test-key"), stub))


def test_health_ok() -> None:
    client = _client(_StubCapability())
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data.get("status") == "ok"
    assert data.get("model") == "gemini-1.5-flash"


def test_generate_text_returns_result() -> None:
    stub = _StubCapability("T")
    r = _client(stub).post("/generate-text", json={"prompt": "hello"})
    assert r.status_code == 200
    assert r.json() == {"result": "T"}
    assert stub.calls == [("hello", None)]


@pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": None}])
def test_generate_text_requires_prompt(body: dict) -> None:
    stub = _StubCapability()
    r = _client(stub).post("/generate-text", json=body)
    assert r.status_code == 400
    assert r.json() == {"message": "Prompt is required."}
    assert stub.calls == []


def test_generate_text_without_body() -> None:
    r = _client(_StubCapability()).post("/generate-text")
    assert r.status_code == 400


def test_generate_text_malformed_json() -> None:
    r = _client(_StubCapability()).post(
        "/generate-text", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 400
    assert r.json() == {"message": "Prompt is required."}


def test_generate_text_rejects_non_string_prompt() -> None:
    stub = _StubCapability()
    r = _client(stub).post("/generate-text", json={"prompt": 123})
    assert r.status_code == 400
    assert r.json() == {"message": "Prompt is required."}
    assert stub.calls == []


@pytest.mark.parametrize(
    "path", ["/generate-from-image", "/generate-from-document", "/generate-from-audio"]
)
def test_upload_routes_require_file(path: str) -> None:
    stub = _StubCapability()
    r = _client(stub).post(path, data={"prompt": "describe"})
    assert r.status_code == 400
    assert r.json() == {"message": "No file uploaded."}
    assert stub.calls == []


def test_image_uses_default_prompt() -> None:
    stub = _StubCapability("a cat")
    r = _client(stub).post(
        "/generate-from-image", files={"image": ("cat.png", b"\x89PNG", "image/png")}
    )
    assert r.status_code == 200
    assert r.json() == {"result": "a cat"}
    prompt, attachment = stub.calls[0]
    assert prompt == "What is in this picture?"
    assert attachment == Attachment(data=b"\x89PNG", mime_type="image/png")


def test_empty_prompt_falls_back_to_default() -> None:
    stub = _StubCapability()
    _client(stub).post(
        "/generate-from-audio",
        data={"prompt": ""},
        files={"audio": ("a.mp3", b"ID3", "audio/mpeg")},
    )
    assert stub.calls[0][0] == DEFAULT_PROMPTS["audio"]


def test_document_uses_caller_prompt() -> None:
    stub = _StubCapability("summary")
    r = _client(stub).post(
        "/generate-from-document",
        data={"prompt": "List the headings."},
        files={"document": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert r.status_code == 200
    prompt, attachment = stub.calls[0]
    assert prompt == "List the headings."
    assert attachment is not None
    assert attachment.mime_type == "application/pdf"


def test_capability_error_maps_to_500() -> None:
    stub = _StubCapability(error=RuntimeError("quota exceeded"))
    r = _client(stub).post("/generate-text", json={"prompt": "hi"})
    assert r.status_code == 500
    assert r.json() == {"message": "quota exceeded"}


def test_capability_error_on_upload_route() -> None:
    stub = _StubCapability(error=CapabilityError("quota exceeded"))
    r = _client(stub).post(
        "/generate-from-image", files={"image": ("x.jpg", b"jpeg", "image/jpeg")}
    )
    assert r.status_code == 500
    assert r.json() == {"message": "quota exceeded"}


def test_repeated_calls_are_identical() -> None:
    client = _client(_StubCapability("same"))
    files = {"image": ("x.png", b"bytes", "image/png")}
    first = client.post("/generate-from-image", files=files, data={"prompt": "p"})
    second = client.post("/generate-from-image", files=files, data={"prompt": "p"})
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


def test_lifespan_starts_without_api_key() -> None:
    with TestClient(create_app(Settings(), _StubCapability())) as client:
        assert client.get("/health").status_code == 200


def test_upstream_failure_logged_once(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "quota exceeded"}})

    settings = Settings(api_key="k")
    capability = GeminiCapability(settings, transport=httpx.MockTransport(handler))
    client = TestClient(create_app(settings, capability))

    with caplog.at_level(logging.ERROR):
        r = client.post("/generate-text", json={"prompt": "hi"})

    assert r.status_code == 500
    assert r.json() == {"message": "quota exceeded"}
    errors = [rec for rec in caplog.records if rec.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert errors[0].name == "gemini_gateway.serve.app"
