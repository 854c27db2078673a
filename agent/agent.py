from __future__ import annotations

import asyncio
import logging
from typing import Dict, Mapping, Optional, Sequence, Tuple

from agent.core.memory import Exchange, MemoryStore
from agent.core.parsing import ReplyParseError, extract_json
from agent.core.prompt import SYSTEM_PROMPT, correction_prompt, user_prompt
from agent.core.schema import SchemaValidationError, StructuredReply, validate
from agent.errors import BadRequest, UpstreamFormatError, UpstreamTimeout, UpstreamUnavailable
from agent.gateway import CompletionClient, CompletionGateway, GatewayError, gemini_factory
from agent.session import SessionRequest, build_session
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class DialogueController:
    """Runs one chat turn: assemble, dispatch, parse, validate, commit.

    Turns for the same user are serialized so memory commits land in the
    order the turns were accepted. Memory is written only after the reply
    has parsed and validated.
    """

    def __init__(
        self,
        gateway: CompletionClient,
        memory: MemoryStore,
        *,
        model: str,
        temperature: float,
        window_size: int = 2,
        timeout_seconds: float = 30.0,
        format_retries: int = 0,
        policy: str = SYSTEM_PROMPT,
    ) -> None:
        self.gateway = gateway
        self.memory = memory
        self.model = model
        self.temperature = temperature
        self.window_size = window_size
        self.timeout_seconds = timeout_seconds
        self.format_retries = format_retries
        self.policy = policy
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def handle_turn(self, user_id: Optional[str], message: Optional[str]) -> StructuredReply:
        if not user_id or not user_id.strip() or not message or not message.strip():
            raise BadRequest("Missing username or message")

        async with self._lock_for(user_id):
            self.memory.get(user_id)
            session = build_session(
                self.policy,
                user_id,
                user_prompt(user_id, message),
                self.memory,
                self.window_size,
            )
            logger.info(
                "Turn: user=%s message_len=%s history_turns=%s",
                user_id,
                len(message),
                len(session.history),
            )
            reply, raw = await self._structured(session)
            self.memory.append(user_id, Exchange(user_message=message, assistant_reply=raw))
            logger.debug("Committed exchange for user=%s (stored=%s)", user_id, self.memory.size(user_id))
            return reply

    async def structured_reply(self, message: Optional[str], username: str = "anonymous") -> StructuredReply:
        """Schema-validated reply without reading or writing memory."""
        if not message or not message.strip():
            raise BadRequest("Message is required")
        session = SessionRequest(policy=self.policy, history=(), current_turn=user_prompt(username, message))
        reply, _ = await self._structured(session)
        return reply

    async def reply(self, message: Optional[str]) -> str:
        """Raw text reply to a single user message."""
        if not message or not message.strip():
            raise BadRequest("Message is required")
        raw = await self._dispatch([{"role": "user", "content": message}])
        if not raw.strip():
            raise UpstreamFormatError("No AI response", raw_text=raw)
        return raw

    async def _structured(self, session: SessionRequest) -> Tuple[StructuredReply, str]:
        messages = session.to_messages()
        attempt = 0
        while True:
            attempt += 1
            raw = await self._dispatch(messages)
            try:
                value, text = extract_json(raw)
                # Only the bare JSON is kept; fences and chatter never reach memory.
                return validate(value), text
            except (ReplyParseError, SchemaValidationError) as exc:
                logger.warning(
                    "Upstream reply rejected (attempt %s/%s): %s; raw=%r",
                    attempt,
                    self.format_retries + 1,
                    exc,
                    raw,
                )
                if attempt > self.format_retries:
                    raise UpstreamFormatError("Invalid AI response format", raw_text=raw) from exc
                messages = messages + [
                    {"role": "assistant", "content": raw},
                    {"role": "user", "content": correction_prompt(str(exc))},
                ]

    async def _dispatch(self, messages: Sequence[Mapping[str, str]]) -> str:
        logger.debug("Dispatch: model=%s temperature=%s messages=%s", self.model, self.temperature, len(messages))
        try:
            return await asyncio.wait_for(
                self.gateway.complete(messages, model=self.model, temperature=self.temperature),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamTimeout(f"Completion service timed out after {self.timeout_seconds}s") from exc
        except GatewayError as exc:
            raise UpstreamUnavailable(str(exc)) from exc


def build_controller(settings: Optional[Settings] = None) -> DialogueController:
    settings = settings or get_settings()
    gateway = CompletionGateway(gemini_factory(settings.google_api_key, top_p=settings.top_p))
    return DialogueController(
        gateway,
        MemoryStore(max_exchanges=settings.memory_cap),
        model=settings.gemini_model,
        temperature=settings.temperature,
        window_size=settings.memory_window,
        timeout_seconds=settings.llm_timeout_seconds,
        format_retries=settings.format_retries,
    )
