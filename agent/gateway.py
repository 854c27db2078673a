"""Async adapter between the controller and a LangChain chat model."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI

from agent.session import to_lc_messages

logger = logging.getLogger(__name__)

ModelFactory = Callable[[str, float], BaseChatModel]


class GatewayError(Exception):
    """Transport, auth or quota failure talking to the completion service."""


class CompletionClient(Protocol):
    async def complete(
        self,
        messages: Sequence[Mapping[str, str]],
        *,
        model: str,
        temperature: float,
    ) -> str: ...


def gemini_factory(api_key: Optional[str], top_p: float = 0.9) -> ModelFactory:
    def build(model: str, temperature: float) -> BaseChatModel:
        if not api_key:
            raise GatewayError("GOOGLE_API_KEY not set. Please configure it in environment or .env")
        return ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            temperature=temperature,
            top_p=top_p,
        )

    return build


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


class CompletionGateway:
    """Sends role/content messages to a chat model and returns its text."""

    def __init__(self, factory: ModelFactory) -> None:
        self._factory = factory
        self._models: Dict[Tuple[str, float], BaseChatModel] = {}

    def _model(self, model: str, temperature: float) -> BaseChatModel:
        key = (model, temperature)
        if key not in self._models:
            self._models[key] = self._factory(model, temperature)
        return self._models[key]

    async def complete(
        self,
        messages: Sequence[Mapping[str, str]],
        *,
        model: str,
        temperature: float,
    ) -> str:
        lc_messages = to_lc_messages([dict(m) for m in messages])
        try:
            llm = self._model(model, temperature)
            logger.debug("Dispatching %s messages to model=%s", len(lc_messages), model)
            response = await llm.ainvoke(lc_messages)
        except GatewayError:
            raise
        except Exception as exc:
            raise GatewayError(f"Completion request failed: {exc}") from exc
        return _content_text(getattr(response, "content", response))
