"""Session assembly: system policy, replayed history, then the current turn."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from agent.core.memory import Exchange, MemoryStore


@dataclass(frozen=True)
class SessionRequest:
    policy: str
    history: Tuple[Exchange, ...]
    current_turn: str

    def to_messages(self) -> List[Dict[str, str]]:
        """Render as role/content dicts in the order the model must see them."""
        messages: List[Dict[str, str]] = []
        if self.policy:
            messages.append({"role": "system", "content": self.policy})
        for pair in self.history:
            messages.append({"role": "user", "content": pair.user_message})
            messages.append({"role": "assistant", "content": pair.assistant_reply})
        messages.append({"role": "user", "content": self.current_turn})
        return messages


def build_session(
    policy: str,
    user_id: str,
    current_turn: str,
    memory: MemoryStore,
    window_size: int,
) -> SessionRequest:
    history = memory.windowed(user_id, window_size)
    return SessionRequest(policy=policy, history=tuple(history), current_turn=current_turn)


def to_lc_messages(messages: Sequence[Dict[str, str]]) -> List[BaseMessage]:
    converted: List[BaseMessage] = []
    for item in messages or []:
        role = (item.get("role") or "").lower()
        content = item.get("content") or ""
        if role == "system":
            converted.append(SystemMessage(content=content))
        elif role in ("user", "human"):
            converted.append(HumanMessage(content=content))
        elif role in ("assistant", "ai", "bot"):
            converted.append(AIMessage(content=content))
        else:
            raise ValueError(f"Unsupported message role: {item.get('role')!r}")
    return converted
