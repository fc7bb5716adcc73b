"""MCP tool registration."""

from mcp.server.fastmcp import FastMCP

from ..config import Config
from .sessions import register_session_tools


def register_all_tools(mcp: FastMCP, config: Config) -> None:
	"""Register all MCP tools."""
	register_session_tools(mcp, config)
