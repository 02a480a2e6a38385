"""Error taxonomy shared by the registry, router and backend adapters."""

from __future__ import annotations

from typing import Optional


class MultichainError(Exception):
    """Base exception for the multichain MCP server."""

    code = "Error"

    def __init__(self, message: str, *, network: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.network = network


class ValidationError(MultichainError):
    """Raised when tool, resource or prompt arguments are malformed."""

    code = "ValidationError"


class UnsupportedBackend(MultichainError):
    """Raised when a network identifier has no registered adapter."""

    code = "UnsupportedBackend"


class DuplicateBackend(MultichainError):
    """Raised at startup when a network or operation is bound twice."""

    code = "DuplicateBackend"


class BackendUnavailable(MultichainError):
    """Raised when a downstream node cannot serve a request."""

    code = "BackendUnavailable"


class BackendApiError(BackendUnavailable):
    """Raised when the node answers with an error status or a bad body."""

    def __init__(
        self,
        message: str,
        *,
        network: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, network=network)
        self.status_code = status_code


class ConfigurationError(MultichainError):
    """Raised when startup configuration is invalid."""

    code = "ConfigurationError"


class RegistryFrozen(MultichainError):
    """Raised when the registry is mutated after startup."""

    code = "RegistryFrozen"


class RouterNotServing(MultichainError):
    """Raised when the router is invoked before startup has completed."""

    code = "RouterNotServing"
