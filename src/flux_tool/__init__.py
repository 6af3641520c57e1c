"""Flux Image Tool - MCP server for Black Forest Labs Flux image generation"""

from flux_tool.client import FluxApiClient
from flux_tool.dispatcher import TOOLS, ToolDispatcher
from flux_tool.file_manager import FileManager

__all__ = ["FluxApiClient", "ToolDispatcher", "FileManager", "TOOLS"]
