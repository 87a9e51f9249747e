# mdrich/llm/schema.py
"""
Typed response shapes for each provider family.

Responses are decoded through these Pydantic models instead of walking
untyped dicts. When a field is missing or has the wrong type, the first
validation error is turned into a MalformedResponseError naming the field
by its path, e.g. "choices[0].message.content".

Shapes:
- OpenAI / OpenRouter: {"choices": [{"message": {"content": "..."}}]}
- Anthropic:           {"content": [{"text": "..."}]}
- Generic:             {"text": "..."}
"""

from __future__ import annotations

from typing import Any, List, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from mdrich.core.exceptions import MalformedResponseError

ROOT_FIELD = "<root>"

ResponseT = TypeVar("ResponseT", bound="ProviderResponse")


class ProviderResponse(BaseModel):
    """Base for provider response shapes. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    @property
    def generated_text(self) -> str:
        raise NotImplementedError


# =============================================================================
# OpenAI-compatible (OpenAI, OpenRouter)
# =============================================================================


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: StrictStr


class ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: ChatMessage


class ChatCompletionResponse(ProviderResponse):
    choices: List[ChatChoice] = Field(..., min_length=1)

    @property
    def generated_text(self) -> str:
        return self.choices[0].message.content


# =============================================================================
# Anthropic Messages API
# =============================================================================


class ContentBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: StrictStr


class MessagesResponse(ProviderResponse):
    content: List[ContentBlock] = Field(..., min_length=1)

    @property
    def generated_text(self) -> str:
        return self.content[0].text


# =============================================================================
# Generic completion endpoint
# =============================================================================


class CompletionResponse(ProviderResponse):
    text: StrictStr

    @property
    def generated_text(self) -> str:
        return self.text


# =============================================================================
# Decoding
# =============================================================================


def format_field_path(loc: Sequence[Union[str, int]]) -> str:
    """
    Render a Pydantic error location as a field path.

    >>> format_field_path(("choices", 0, "message", "content"))
    'choices[0].message.content'
    """
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or ROOT_FIELD


def decode_response(shape: Type[ResponseT], data: Any, provider: str = "unknown") -> ResponseT:
    """
    Validate decoded JSON against a response shape.

    Raises:
        MalformedResponseError: Naming the first missing or mistyped field
    """
    try:
        return shape.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        field = format_field_path(errors[0]["loc"]) if errors else ROOT_FIELD
        raise MalformedResponseError(field=field, provider=provider) from e


__all__ = [
    "ChatCompletionResponse",
    "CompletionResponse",
    "MessagesResponse",
    "ProviderResponse",
    "decode_response",
    "format_field_path",
]
