"""Tool call handlers for MCP Git Ops"""

import asyncio
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional, Set, Union

import git
from mcp.types import TextContent
from pydantic import ValidationError

from ..configuration import OrchestratorConfig
from ..error_handling import ErrorKind, GitOpsError
from ..git.models import GitClearWorkingDir, GitSetWorkingDir, OperationResult
from ..git.paths import PathResolver
from ..git.runner import CommandRunner
from ..models.notifications import parse_client_notification
from ..operations import OperationContext, RewordDispatcher, StashDispatcher
from ..session import SessionManager
from .tools import GitTools, ToolRegistry

logger = logging.getLogger(__name__)

# Used when the transport does not identify the client session
DEFAULT_SESSION_ID = "default"

RequestId = Union[str, int]


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "arguments"
        parts.append(f"{location}: {detail['msg']}")
    return "invalid arguments: " + "; ".join(parts)


def result_content(result: OperationResult) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(result.to_payload(), indent=2))]


class CallToolHandler:
    """Validates tool arguments and routes them to the operation dispatchers"""

    def __init__(
        self,
        config: OrchestratorConfig,
        sessions: Optional[SessionManager] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.config = config
        self.sessions = sessions or SessionManager()
        self.registry = registry or ToolRegistry()
        self.registry.initialize_default_tools()

        self.runner = CommandRunner(
            git_executable=config.git_executable,
            default_timeout=config.command_timeout_seconds,
        )
        self.resolver = PathResolver(
            allowed_roots=config.allowed_roots,
            default_directory=config.default_directory,
        )
        self.dispatchers = {
            GitTools.REWORD.value: RewordDispatcher(self.runner, self.resolver),
            GitTools.STASH.value: StashDispatcher(self.runner, self.resolver),
        }
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._cancelled: Set[str] = set()

    async def call_tool(
        self,
        name: str,
        arguments: Optional[dict],
        session_id: Optional[str] = None,
        request_id: Optional[RequestId] = None,
    ) -> List[TextContent]:
        """Main tool call entry point"""
        request_key = str(request_id) if request_id is not None else os.urandom(4).hex()
        session_id = session_id or DEFAULT_SESSION_ID
        extra = {"request_id": request_key, "session_id": session_id, "operation": name}
        logger.info(f"Tool call: {name}", extra=extra)
        logger.debug(f"Arguments: {arguments}", extra=extra)

        start_time = time.time()
        task = asyncio.ensure_future(self._route(name, arguments, session_id, request_key))
        self._in_flight[request_key] = task
        try:
            result = await task
        except asyncio.CancelledError:
            if request_key not in self._cancelled:
                task.cancel()
                raise
            logger.info(f"Tool '{name}' cancelled by the client", extra=extra)
            return [TextContent(type="text", text=f"Error in {name}: request was cancelled")]
        except (ValidationError, GitOpsError) as e:
            message = format_validation_error(e) if isinstance(e, ValidationError) else str(e)
            logger.warning(f"Tool '{name}' rejected: {message}", extra=extra)
            return [TextContent(type="text", text=f"Error in {name}: {message}")]
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Tool '{name}' failed after {duration:.2f}s: {e}", exc_info=True, extra=extra
            )
            return [TextContent(type="text", text=f"Error in {name}: {e}")]
        finally:
            self._in_flight.pop(request_key, None)
            self._cancelled.discard(request_key)

        duration = time.time() - start_time
        logger.info(f"Tool '{name}' completed in {duration:.2f}s", extra=extra)
        return result

    async def _route(
        self, name: str, arguments: Optional[dict], session_id: str, request_id: str
    ) -> List[TextContent]:
        tool_def = self.registry.get_tool(name)
        if tool_def is None:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        request = tool_def.parse(arguments)
        await self.sessions.record_command(session_id)

        if isinstance(request, GitSetWorkingDir):
            return result_content(await self.set_working_dir(request, session_id))
        if isinstance(request, GitClearWorkingDir):
            return result_content(await self.clear_working_dir(session_id))

        context = OperationContext(
            request_id=request_id,
            session_id=session_id,
            get_working_directory=self.sessions.get_working_directory,
        )
        result = await self.dispatchers[name].execute(request, context)
        return result_content(result)

    async def set_working_dir(
        self, request: GitSetWorkingDir, session_id: str
    ) -> OperationResult:
        target = self.resolver.resolve(
            request.path, self.sessions.get_working_directory(session_id)
        )
        if not target.exists:
            return OperationResult.failed(
                ErrorKind.NOT_A_GIT_REPOSITORY,
                f"Path does not exist or is not a directory: {target.path}",
                path=target.path,
            )

        repository_root = None
        if request.validate_git_repo:
            try:
                repo = git.Repo(target.path, search_parent_directories=True)
            except (git.InvalidGitRepositoryError, git.NoSuchPathError):
                return OperationResult.failed(
                    ErrorKind.NOT_A_GIT_REPOSITORY,
                    f"Path is not a Git repository: {target.path}",
                    path=target.path,
                )
            repository_root = repo.working_tree_dir
            repo.close()

        previous = await self.sessions.set_working_directory(session_id, target.path)
        return OperationResult.succeeded(
            f"Working directory set to {target.path}",
            path=target.path,
            previousPath=previous,
            repositoryRoot=repository_root,
        )

    async def clear_working_dir(self, session_id: str) -> OperationResult:
        previous = await self.sessions.clear_working_directory(session_id)
        if previous is None:
            return OperationResult.succeeded("No working directory was set")
        return OperationResult.succeeded(
            f"Working directory cleared (was {previous})", previousPath=previous
        )

    def cancel_request(self, request_id: RequestId) -> bool:
        """Cancel an in-flight tool call; its git subprocess is killed."""
        request_key = str(request_id)
        task = self._in_flight.get(request_key)
        if task is None or task.done():
            logger.debug(f"No in-flight request {request_key} to cancel")
            return False
        self._cancelled.add(request_key)
        task.cancel()
        logger.info(f"Cancelling request {request_key}", extra={"request_id": request_key})
        return True

    def handle_notification(self, data: Dict[str, Any]) -> bool:
        """Act on a raw client notification. Returns True when a request was cancelled."""
        notification = parse_client_notification(data)
        if notification is None:
            return False
        reason = notification.params.reason
        if reason:
            logger.info(f"Client cancelled request {notification.params.requestId}: {reason}")
        return self.cancel_request(notification.params.requestId)

    @property
    def in_flight(self) -> List[str]:
        return list(self._in_flight)
