"""Resource addressing: ``{network}://{entity-kind}/{entity-id}``."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List

from multichain_mcp.errors import ValidationError
from multichain_mcp.networks import Network


class ResourceKind(str, Enum):
    TRANSACTION = "transaction"
    WALLET = "wallet"


@dataclass(frozen=True, slots=True)
class ResourceIdentifier:
    # Raw network segment; the router decides whether it is supported.
    network: str
    kind: ResourceKind
    entity_id: str

    @property
    def uri(self) -> str:
        return f"{self.network}://{self.kind.value}/{self.entity_id}"


def parse_resource_uri(uri: Any) -> ResourceIdentifier:
    if not isinstance(uri, str) or not uri.strip():
        raise ValidationError("Resource URI is required.")
    scheme, sep, rest = uri.strip().partition("://")
    if not sep or not scheme:
        raise ValidationError(f"Invalid resource URI: {uri}")
    kind_raw, slash, entity_id = rest.partition("/")
    entity_id = entity_id.strip("/")
    if not slash or not entity_id or "/" in entity_id:
        raise ValidationError(f"Invalid resource URI: {uri}")
    try:
        kind = ResourceKind(kind_raw.lower())
    except ValueError:
        raise ValidationError(
            f"Unknown resource kind '{kind_raw}'; expected one of: transaction, wallet"
        ) from None
    return ResourceIdentifier(network=scheme.lower(), kind=kind, entity_id=entity_id)


def resource_templates(networks: Iterable[Network]) -> List[Dict[str, str]]:
    templates: List[Dict[str, str]] = []
    for network in networks:
        templates.append(
            {
                "uriTemplate": f"{network.value}://wallet/{{address}}",
                "name": f"{network.value}-wallet",
                "description": f"Balance and recent transactions of a {network.value} address.",
                "mimeType": "application/json",
            }
        )
        templates.append(
            {
                "uriTemplate": f"{network.value}://transaction/{{txId}}",
                "name": f"{network.value}-transaction",
                "description": f"Raw {network.value} transaction by id.",
                "mimeType": "application/json",
            }
        )
    return templates
