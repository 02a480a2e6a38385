"""Invocation result envelope returned by every tool call."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

TEXT_KIND = "text"


@dataclass(frozen=True, slots=True)
class ContentBlock:
    kind: str
    body: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind, "text": self.body}


def _serialize(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload, ensure_ascii=True)
    except (TypeError, ValueError):
        return str(payload)


@dataclass(frozen=True, slots=True)
class InvocationResult:
    """
    Discriminated success/error envelope.

    A success carries a non-empty list of content blocks (and, for structured
    payloads, the payload itself). An error carries a message and an error
    code. Never both, never neither.
    """

    content: List[ContentBlock] = field(default_factory=list)
    structured: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    def __post_init__(self) -> None:
        has_content = bool(self.content)
        has_error = self.error is not None
        if has_content == has_error:
            raise ValueError("InvocationResult needs exactly one of content or error")

    @classmethod
    def success(cls, payload: Any) -> "InvocationResult":
        structured = None if isinstance(payload, str) else payload
        return cls(content=[ContentBlock(TEXT_KIND, _serialize(payload))], structured=structured)

    @classmethod
    def failure(cls, message: str, *, code: str = "Error") -> "InvocationResult":
        return cls(error=message or "Error", error_code=code)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        """Render in the MCP CallToolResult shape."""
        if self.is_error:
            return {
                "content": [ContentBlock(TEXT_KIND, str(self.error)).to_dict()],
                "isError": True,
                "structuredContent": {"error": self.error, "code": self.error_code},
            }
        wrapped: Dict[str, Any] = {"content": [block.to_dict() for block in self.content]}
        if isinstance(self.structured, dict):
            wrapped["structuredContent"] = self.structured
        elif isinstance(self.structured, list):
            wrapped["structuredContent"] = {"items": self.structured}
        elif self.structured is not None:
            wrapped["structuredContent"] = {"value": self.structured}
        return wrapped
