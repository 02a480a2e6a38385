"""Prompt templates. Pure text generation; no backend I/O."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from multichain_mcp.errors import ValidationError


@dataclass(frozen=True, slots=True)
class PromptArgument:
    name: str
    description: str
    required: bool = True


@dataclass(frozen=True, slots=True)
class PromptDefinition:
    name: str
    description: str
    arguments: Tuple[PromptArgument, ...]
    render: Callable[[Dict[str, str]], str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [
                {"name": arg.name, "description": arg.description, "required": arg.required}
                for arg in self.arguments
            ],
        }


def _analyze_wallet(args: Dict[str, str]) -> str:
    return (
        f"Analyze the {args['network']} wallet {args['address']}. "
        f"Call the wallet-info tool with network \"{args['network']}\" and address "
        f"\"{args['address']}\", then summarize the current balance, the most recent "
        "transactions and any notable patterns in the activity. State clearly if the "
        "lookup failed instead of guessing."
    )


def _explain_transaction(args: Dict[str, str]) -> str:
    return (
        f"Explain the {args['network']} transaction {args['txId']}. "
        f"Fetch it with the {args['network']}-transaction tool, then describe its inputs, "
        "outputs, amounts, fees and confirmation state in plain language."
    )


def _compare_networks(args: Dict[str, str]) -> str:
    networks = args.get("networks") or "every supported network"
    return (
        f"Look up the address {args['address']} on {networks} using the wallet-info tool. "
        "For each network report the balance and the number of recent transactions, and "
        "note where the address is unknown or the backend is unavailable."
    )


PROMPTS: Dict[str, PromptDefinition] = {
    "analyze-wallet": PromptDefinition(
        name="analyze-wallet",
        description="Summarize a wallet's balance and recent activity on one network.",
        arguments=(
            PromptArgument("network", "Network identifier, e.g. flux"),
            PromptArgument("address", "Wallet address"),
        ),
        render=_analyze_wallet,
    ),
    "explain-transaction": PromptDefinition(
        name="explain-transaction",
        description="Explain a single transaction in plain language.",
        arguments=(
            PromptArgument("network", "Network identifier, e.g. flux"),
            PromptArgument("txId", "Transaction id or hash"),
        ),
        render=_explain_transaction,
    ),
    "compare-networks": PromptDefinition(
        name="compare-networks",
        description="Look up one address across several networks.",
        arguments=(
            PromptArgument("address", "Wallet address"),
            PromptArgument("networks", "Comma-separated networks (default: all)", required=False),
        ),
        render=_compare_networks,
    ),
}


def list_prompts() -> List[Dict[str, Any]]:
    return [prompt.to_dict() for prompt in PROMPTS.values()]


def render_prompt(name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    prompt = PROMPTS.get(name)
    if prompt is None:
        raise ValidationError(f"Unknown prompt: {name}")
    args = args or {}
    if not isinstance(args, dict):
        raise ValidationError("Prompt arguments must be an object.")

    values: Dict[str, str] = {}
    for argument in prompt.arguments:
        raw = args.get(argument.name)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if argument.required:
                raise ValidationError(f"Missing required argument: {argument.name}")
            continue
        values[argument.name] = str(raw).strip()

    return {
        "description": prompt.description,
        "messages": [
            {"role": "user", "content": {"type": "text", "text": prompt.render(values)}},
        ],
    }
