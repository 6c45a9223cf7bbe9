"""Tool registry and call handling"""

from .handlers import CallToolHandler
from .tools import GitTools, ToolCategory, ToolDefinition, ToolRegistry

__all__ = ["CallToolHandler", "GitTools", "ToolCategory", "ToolDefinition", "ToolRegistry"]
