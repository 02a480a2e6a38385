"""Argument schemas for MCP tools."""

from __future__ import annotations

import re
from typing import Any, Dict, Type

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from multichain_mcp.config import MAX_IDENTIFIER_LENGTH
from multichain_mcp.errors import ValidationError

# Addresses and ids are interpolated into downstream URL paths.
IDENTIFIER_REGEX = re.compile(r"^[A-Za-z0-9:_\-.]+$")
IDENTIFIER_PATTERN = IDENTIFIER_REGEX.pattern


def _check_identifier(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(f"{label} must be at most {MAX_IDENTIFIER_LENGTH} characters")
    if not IDENTIFIER_REGEX.fullmatch(value):
        raise ValueError(f"{label} contains invalid characters")
    # Dot-only values would be collapsed as path segments.
    if not any(ch.isalnum() for ch in value):
        raise ValueError(f"{label} must contain a letter or digit")
    return value


class ToolArguments(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AddressArguments(ToolArguments):
    address: StrictStr = Field(description="Wallet address on the target network", pattern=IDENTIFIER_PATTERN)

    @field_validator("address", mode="before")
    @classmethod
    def _address(cls, value: Any) -> Any:
        return _check_identifier(value, "address") if isinstance(value, str) else value


class TransactionArguments(ToolArguments):
    tx_id: StrictStr = Field(alias="txId", description="Transaction id or hash", pattern=IDENTIFIER_PATTERN)

    @field_validator("tx_id", mode="before")
    @classmethod
    def _tx_id(cls, value: Any) -> Any:
        return _check_identifier(value, "txId") if isinstance(value, str) else value


class GenericWalletArguments(AddressArguments):
    network: StrictStr = Field(description="Network identifier, e.g. flux")


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "arguments"
        message = str(error.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        parts.append(f"{location}: {message}")
    return "Invalid arguments: " + "; ".join(parts)


def validate_arguments(model: Type[ToolArguments], args: Any) -> Dict[str, Any]:
    """Validate ``args`` against ``model`` and return handler keyword arguments."""
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise ValidationError("Invalid arguments: expected an object")
    try:
        parsed = model.model_validate(args)
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from None
    return parsed.model_dump()


def input_schema(model: Type[ToolArguments]) -> Dict[str, Any]:
    """JSON schema advertised to MCP clients (aliases, no additional properties)."""
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    schema.setdefault("required", [])
    schema["additionalProperties"] = False
    return schema
