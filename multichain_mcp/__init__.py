"""
Multichain MCP server package.

This package exposes LLM-friendly tools, resources and prompts backed by the
HTTP APIs of several blockchain nodes. See DESIGN.md for full details.
"""

__all__ = ["config"]
