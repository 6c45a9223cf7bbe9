"""Tool registry for MCP Git Ops"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Type

from mcp.types import Tool
from pydantic import BaseModel

from ..git.models import (
    GitClearWorkingDir,
    GitReword,
    GitSetWorkingDir,
    GitStash,
    GitStashSchema,
)

logger = logging.getLogger(__name__)


class GitTools(str, Enum):
    """Enumeration of all available tools"""

    REWORD = "git_reword"
    STASH = "git_stash"
    SET_WORKING_DIR = "git_set_working_dir"
    CLEAR_WORKING_DIR = "git_clear_working_dir"


class ToolCategory(str, Enum):
    """Tool categories for organization and routing"""

    GIT = "git"
    SESSION = "session"


@dataclass
class ToolDefinition:
    """Complete tool definition with metadata.

    ``schema`` is advertised to clients, ``request_model`` validates the
    arguments. They differ only where the advertised shape is flattened.
    """

    name: str
    category: ToolCategory
    description: str
    schema: Type[BaseModel]
    request_model: Optional[Type[BaseModel]] = None

    @property
    def validator(self) -> Type[BaseModel]:
        return self.request_model or self.schema

    def parse(self, arguments: Optional[dict]) -> BaseModel:
        # Clients fill unused optional fields of the flat schema with null
        provided = {k: v for k, v in (arguments or {}).items() if v is not None}
        return self.validator.model_validate(provided)


DEFAULT_TOOLS = (
    ToolDefinition(
        name=GitTools.REWORD.value,
        category=ToolCategory.GIT,
        description=(
            "Change a commit message. HEAD (the default) is amended in place; "
            "for older commits the result explains the interactive rebase to run."
        ),
        schema=GitReword,
    ),
    ToolDefinition(
        name=GitTools.STASH.value,
        category=ToolCategory.GIT,
        description=(
            "Manage stashed changes: list, save, apply, pop or drop. Conflicts "
            "while applying are reported with the affected files."
        ),
        schema=GitStashSchema,
        request_model=GitStash,
    ),
    ToolDefinition(
        name=GitTools.SET_WORKING_DIR.value,
        category=ToolCategory.SESSION,
        description=(
            "Remember a working directory for this session so later git tools "
            "can omit 'path'."
        ),
        schema=GitSetWorkingDir,
    ),
    ToolDefinition(
        name=GitTools.CLEAR_WORKING_DIR.value,
        category=ToolCategory.SESSION,
        description="Forget the working directory remembered for this session.",
        schema=GitClearWorkingDir,
    ),
)


class ToolRegistry:
    """Central registry for all MCP Git Ops tools"""

    def __init__(self):
        self.tools: Dict[str, ToolDefinition] = {}
        self._initialized = False

    def register(self, tool_def: ToolDefinition):
        """Register a tool in the registry"""
        self.tools[tool_def.name] = tool_def
        logger.debug(f"Registered tool: {tool_def.name} ({tool_def.category.value})")

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        """Get tool definition by name"""
        return self.tools.get(name)

    def list_tools(self) -> List[Tool]:
        """Get all tools as MCP Tool objects"""
        return [
            Tool(
                name=tool_def.name,
                description=tool_def.description,
                inputSchema=tool_def.schema.model_json_schema(by_alias=True),
            )
            for tool_def in self.tools.values()
        ]

    def get_tools_by_category(self, category: ToolCategory) -> List[ToolDefinition]:
        """Get all tools in a specific category"""
        return [
            tool_def for tool_def in self.tools.values() if tool_def.category == category
        ]

    def initialize_default_tools(self):
        """Initialize registry with the default tools"""
        if self._initialized:
            return
        for tool_def in DEFAULT_TOOLS:
            self.register(tool_def)
        self._initialized = True
        logger.info(f"Initialized tool registry with {len(self.tools)} tools")
