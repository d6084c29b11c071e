"""Error types shared by the gateway routes and the generation adapter."""
from __future__ import annotations


class GatewayError(Exception):
    """Base error rendered to the caller as ``{"message": ...}``."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(GatewayError):
    """The caller's request is missing a prompt or a file."""

    status_code = 400


class CapabilityError(GatewayError):
    """The generation capability failed (network, quota, malformed response)."""

    status_code = 500


class ConfigError(Exception):
    """Settings could not be built at startup."""
