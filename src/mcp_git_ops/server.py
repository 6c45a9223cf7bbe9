"""
MCP Git Ops server: stdio transport wired to the tool handler.
"""

import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .configuration import OrchestratorConfig
from .core.handlers import CallToolHandler
from .session import SessionManager

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-git-ops"


def _current_ids(server: Server) -> Dict[str, Optional[str]]:
    """Session and request ids of the request being served, when known."""
    try:
        context = server.request_context
    except LookupError:
        return {"session_id": None, "request_id": None}
    return {
        "session_id": f"{id(context.session):x}",
        "request_id": str(context.request_id),
    }


def create_server(handler: CallToolHandler) -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return handler.registry.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        ids = _current_ids(server)
        return await handler.call_tool(
            name, arguments, session_id=ids["session_id"], request_id=ids["request_id"]
        )

    async def on_cancelled(notification: types.CancelledNotification) -> None:
        handler.handle_notification(notification.model_dump(by_alias=True, mode="json"))

    server.notification_handlers[types.CancelledNotification] = on_cancelled
    return server


async def serve(config: OrchestratorConfig) -> None:
    logger.info("Starting MCP Git Ops server")
    logger.info(f"Default directory: {config.default_directory or '.'}")

    sessions = SessionManager()
    handler = CallToolHandler(config, sessions)
    server = create_server(handler)

    # Test mode for CI
    if config.test_mode:
        logger.info("Running in test mode, not attaching to stdio")
        await asyncio.sleep(1)
        return

    sessions.start()
    try:
        options = server.create_initialization_options()
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Server running. Waiting for requests...")
            await server.run(read_stream, write_stream, options, raise_exceptions=True)
    except Exception as e:
        logger.exception(f"Critical Error: Server stopped due to unhandled exception: {e}")
        sys.exit(1)
    finally:
        await sessions.shutdown()
        logger.info("MCP Git Ops server shutting down.")
