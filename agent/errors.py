"""Failure kinds surfaced by the dialogue controller."""

from __future__ import annotations


class ChatServiceError(Exception):
    """Base class for failures that end the current turn."""


class BadRequest(ChatServiceError):
    """Caller input is missing or empty."""


class UpstreamUnavailable(ChatServiceError):
    """The completion service failed at the transport, auth or quota level."""


class UpstreamTimeout(ChatServiceError):
    """The completion service did not answer within the configured timeout."""


class UpstreamFormatError(ChatServiceError):
    """The completion service answered, but not with the structured contract."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text
