"""Generation capability: prompt plus optional inline attachment -> text.

The gateway only depends on ``GenerationCapability``; ``GeminiCapability`` is
the network-backed implementation calling Gemini ``generateContent``.
"""
from __future__ import annotations
import base64
from typing import Any, Protocol

import httpx

from gemini_gateway.common.errors import CapabilityError
from gemini_gateway.common.schema import Attachment
from gemini_gateway.common.settings import Settings

class GenerationCapability(Protocol):
    async def generate(self, prompt: str, attachment: Attachment | None = None) -> str:
        ...

def build_contents(prompt: str, attachment: Attachment | None = None) -> list[dict[str, Any]]:
    """
    Build the ordered parts of a single user turn.

    Args:
        prompt: Instruction text, always the first part.
        attachment: Optional file, sent as base64 ``inline_data`` after the prompt.
    """
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if attachment is not None:
        parts.append(
            {
                "inline_data": {
                    "mime_type": attachment.mime_type,
                    "data": base64.b64encode(attachment.data).decode("ascii"),
                }
            }
        )
    return parts

def _error_message(r: httpx.Response) -> str:
    """Upstream ``error.message`` if the body carries one, else the status."""
    try:
        message = r.json()["error"]["message"]
        if message:
            return str(message)
    except (ValueError, KeyError, TypeError):
        pass
    return f"HTTP {r.status_code}"

def extract_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate.

    Raises CapabilityError when the response is blocked or malformed.
    """
    if not isinstance(data, dict):
        raise CapabilityError("Malformed model response")
    candidates = data.get("candidates") or []
    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason")
        if reason:
            raise CapabilityError(f"Prompt blocked: {reason}")
        raise CapabilityError("Model returned no candidates")
    try:
        parts = candidates[0]["content"]["parts"]
        texts = [p["text"] for p in parts if "text" in p]
    except (KeyError, TypeError) as e:
        finish = candidates[0].get("finishReason") if isinstance(candidates[0], dict) else None
        if finish:
            raise CapabilityError(f"Model returned no text (finishReason={finish})") from e
        raise CapabilityError("Malformed model response") from e
    if not texts:
        raise CapabilityError("Model returned no text")
    return "".join(texts)

class GeminiCapability:
    """Calls ``{base_url}/models/{model}:generateContent`` with httpx."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        # injectable for tests (httpx.MockTransport)
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.settings.base_url.rstrip('/')}/models/{self.settings.model}:generateContent"

    def build_payload(self, prompt: str, attachment: Attachment | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": build_contents(prompt, attachment)}],
        }
        generation_config = self.settings.generation_config()
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    async def generate(self, prompt: str, attachment: Attachment | None = None) -> str:
        if not self.settings.api_key:
            raise CapabilityError("API key is not configured")

        headers = {
            "x-goog-api-key": self.settings.api_key,
            "Content-Type": "application/json",
        }
        payload = self.build_payload(prompt, attachment)

        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout, transport=self._transport) as client:
                r = await client.post(self.url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise CapabilityError(str(e) or type(e).__name__) from e

        if r.is_error:
            message = _error_message(r)
            raise CapabilityError(message)

        try:
            data = r.json()
        except ValueError as e:
            raise CapabilityError("Malformed model response") from e
        return extract_text(data)
