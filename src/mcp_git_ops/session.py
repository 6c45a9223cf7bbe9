"""
Session management for MCP Git Ops.

- Remembers a working directory per MCP session.
- Lookups are plain dict reads so dispatchers can call them synchronously.
- Mutations are serialized with an asyncio.Lock.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SessionState(Enum):
    ACTIVE = auto()
    CLOSED = auto()


@dataclass
class SessionMetrics:
    start_time: float = field(default_factory=time.time)
    last_active: float = field(default_factory=time.time)
    command_count: int = 0
    directory_changes: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time,
            "last_active": self.last_active,
            "command_count": self.command_count,
            "directory_changes": self.directory_changes,
            "uptime": time.time() - self.start_time,
            "idle_time": time.time() - self.last_active,
        }


class Session:
    """
    A single MCP client session.
    Holds the remembered working directory and light usage metrics.
    """

    def __init__(self, session_id: str, working_directory: Optional[str] = None):
        self.session_id = session_id
        self.working_directory = working_directory
        self.state = SessionState.ACTIVE
        self.metrics = SessionMetrics()
        logger.info(f"Session {self.session_id} created")

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def touch(self) -> None:
        self.metrics.last_active = time.time()
        self.metrics.command_count += 1

    def close(self) -> None:
        self.state = SessionState.CLOSED
        self.working_directory = None
        logger.info(f"Session {self.session_id} closed")

    def get_metrics(self) -> Dict[str, Any]:
        return self.metrics.as_dict()

    def __repr__(self):
        return (
            f"<Session id={self.session_id} state={self.state.name} "
            f"working_directory={self.working_directory}>"
        )


class SessionManager:
    """
    Owns all sessions and their working directories.

    ``get_working_directory`` is the lookup handed to operation dispatchers.
    A session that was never seen has no working directory.
    """

    def __init__(self, idle_timeout: float = 900.0, cleanup_interval: float = 60.0):
        self._sessions: Dict[str, Session] = {}
        self._lock = asyncio.Lock()
        self._idle_timeout = idle_timeout
        self._cleanup_interval = cleanup_interval
        self._cleanup_task: Optional[asyncio.Task] = None

    def start(self) -> None:
        """Start closing idle sessions in the background."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._idle_cleanup_loop())

    async def _idle_cleanup_loop(self):
        try:
            while True:
                await asyncio.sleep(self._cleanup_interval)
                closed = await self.cleanup_idle_sessions()
                if closed:
                    logger.debug(f"SessionManager: Closed {closed} idle session(s)")
        except asyncio.CancelledError:
            logger.debug("SessionManager: Idle cleanup task cancelled")
            raise

    def get_working_directory(self, session_id: Optional[str]) -> Optional[str]:
        if session_id is None:
            return None
        session = self._sessions.get(session_id)
        return session.working_directory if session else None

    async def get_or_create_session(self, session_id: str) -> Session:
        async with self._lock:
            return self._get_or_create(session_id)

    def _get_or_create(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id)
            self._sessions[session_id] = session
        return session

    async def set_working_directory(self, session_id: str, path: str) -> Optional[str]:
        """Remember ``path`` for the session and return the previous value."""
        async with self._lock:
            session = self._get_or_create(session_id)
            previous = session.working_directory
            session.working_directory = path
            session.metrics.directory_changes += 1
            session.touch()
            logger.info(f"Session {session_id} working directory set to {path}")
            return previous

    async def clear_working_directory(self, session_id: str) -> Optional[str]:
        """Forget the session's working directory and return what it was."""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            previous = session.working_directory
            session.working_directory = None
            session.touch()
            logger.info(f"Session {session_id} working directory cleared")
            return previous

    async def record_command(self, session_id: str) -> None:
        async with self._lock:
            self._get_or_create(session_id).touch()

    async def cleanup_idle_sessions(self) -> int:
        """
        Closes sessions that are idle past the timeout.
        """
        async with self._lock:
            now = time.time()
            to_close = [
                session_id
                for session_id, session in self._sessions.items()
                if now - session.metrics.last_active > self._idle_timeout
            ]
            for session_id in to_close:
                logger.info(f"SessionManager: Cleaning up idle session {session_id}")
                self._sessions.pop(session_id).close()
            return len(to_close)

    async def get_all_sessions(self) -> Dict[str, Session]:
        async with self._lock:
            return dict(self._sessions)

    async def get_metrics(self) -> Dict[str, Any]:
        async with self._lock:
            return {
                sid: session.get_metrics() for sid, session in self._sessions.items()
            }

    async def shutdown(self):
        """
        Stop the idle cleanup and close all sessions.
        """
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                logger.debug("SessionManager: Idle cleanup stopped")
            self._cleanup_task = None
        async with self._lock:
            logger.info("SessionManager: Shutting down all sessions")
            for session in list(self._sessions.values()):
                session.close()
            self._sessions.clear()
            logger.info("SessionManager: All sessions closed")
