"""Structural contract for summaries returned by the completion service."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

MISSING_FIELD = "missing_field"
WRONG_TYPE = "wrong_type"
ROOT = "<root>"


class StructuredReply(BaseModel):
    # Unknown keys are dropped so small model drift does not fail the turn.
    model_config = ConfigDict(extra="ignore", frozen=True)

    topic: StrictStr = Field(..., description="What the message is about")
    summary: StrictStr = Field(..., description="Short restatement of the message")
    fun_fact: StrictStr = Field(..., description="A related fun fact")


class SchemaValidationError(ValueError):
    def __init__(self, kind: str, field: str, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.field = field
        message = f"{kind}: {field}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


def validate(value: Any) -> StructuredReply:
    """Check a parsed value against :class:`StructuredReply`.

    Raises :class:`SchemaValidationError` for the first violation, in field
    declaration order.
    """
    if not isinstance(value, dict):
        raise SchemaValidationError(WRONG_TYPE, ROOT, f"expected object, got {type(value).__name__}")

    try:
        return StructuredReply.model_validate(value)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = first.get("loc") or (ROOT,)
        kind = MISSING_FIELD if first.get("type") == "missing" else WRONG_TYPE
        raise SchemaValidationError(kind, str(loc[0]), first.get("msg")) from exc
