"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
from dataclasses import dataclass

from pydantic import BaseModel

DEFAULT_MIME_TYPE = "application/octet-stream"

@dataclass(frozen=True)
class Attachment:
    """Uploaded file forwarded inline with the prompt."""
    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE

class GenerateTextIn(BaseModel):
    prompt: str | None = None

class GenerateOut(BaseModel):
    result: str
