"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from agent.agent import DialogueController  # noqa: E402
from agent.core.memory import MemoryStore  # noqa: E402


class StubGateway:
    """Scripted completion client.

    Replies are consumed in order; the last one repeats. An exception instance
    is raised instead of returned. ``delays`` optionally pauses each call.
    """

    def __init__(self, *replies, delays=None):
        self.replies = list(replies)
        self.delays = list(delays or [])
        self.calls = []

    async def complete(self, messages, *, model, temperature):
        self.calls.append({"messages": [dict(m) for m in messages], "model": model, "temperature": temperature})
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def make_controller():
    def factory(*replies, delays=None, memory=None, **kwargs):
        gateway = StubGateway(*replies, delays=delays)
        kwargs.setdefault("model", "gemini-test")
        kwargs.setdefault("temperature", 0.7)
        controller = DialogueController(gateway, memory if memory is not None else MemoryStore(), **kwargs)
        return controller, gateway

    return factory
