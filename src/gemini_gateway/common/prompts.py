"""Prompt helpers for the upload routes."""
from __future__ import annotations

IMAGE_PROMPT = "What is in this picture?"
DOCUMENT_PROMPT = "Please summarize the following document in English:"
AUDIO_PROMPT = "Please provide a transcript for the following recording."

DEFAULT_PROMPTS: dict[str, str] = {
    "image": IMAGE_PROMPT,
    "document": DOCUMENT_PROMPT,
    "audio": AUDIO_PROMPT,
}

def resolve_prompt(prompt: str | None, default: str) -> str:
    """
    Pick the caller's prompt, or the route default when it is empty.

    Args:
        prompt: Prompt sent by the caller, possibly None or "".
        default: Fixed per-route fallback.

    Returns:
        The prompt to forward.
    """
    return prompt or default
