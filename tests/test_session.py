"""
Tests for session working directory management.
"""

import asyncio

import pytest

from mcp_git_ops.session import Session, SessionManager, SessionMetrics, SessionState


class TestSession:
    def test_session_defaults(self):
        session = Session("s1")
        assert session.is_active
        assert session.working_directory is None
        assert session.metrics.command_count == 0

    def test_close_forgets_directory(self):
        session = Session("s1", working_directory="/repo")
        session.close()
        assert session.state is SessionState.CLOSED
        assert session.working_directory is None

    def test_metrics_as_dict(self):
        metrics = SessionMetrics().as_dict()
        assert metrics["command_count"] == 0
        assert metrics["uptime"] >= 0


class TestSessionManager:
    def test_unknown_session_has_no_directory(self):
        manager = SessionManager()
        assert manager.get_working_directory("missing") is None
        assert manager.get_working_directory(None) is None

    @pytest.mark.asyncio
    async def test_set_and_clear_round_trip(self):
        manager = SessionManager()

        previous = await manager.set_working_directory("s1", "/repo/a")
        assert previous is None
        assert manager.get_working_directory("s1") == "/repo/a"

        previous = await manager.set_working_directory("s1", "/repo/b")
        assert previous == "/repo/a"

        cleared = await manager.clear_working_directory("s1")
        assert cleared == "/repo/b"
        assert manager.get_working_directory("s1") is None

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self):
        manager = SessionManager()
        await manager.set_working_directory("s1", "/one")
        await manager.set_working_directory("s2", "/two")
        assert manager.get_working_directory("s1") == "/one"
        assert manager.get_working_directory("s2") == "/two"

    @pytest.mark.asyncio
    async def test_clear_unknown_session(self):
        assert await SessionManager().clear_working_directory("nobody") is None

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_serialized(self):
        manager = SessionManager()
        await asyncio.gather(
            *(manager.set_working_directory("s1", f"/repo/{i}") for i in range(20))
        )
        session = (await manager.get_all_sessions())["s1"]
        assert session.metrics.directory_changes == 20

    @pytest.mark.asyncio
    async def test_idle_sessions_cleaned_up(self):
        manager = SessionManager(idle_timeout=0.0)
        await manager.set_working_directory("s1", "/repo")
        await asyncio.sleep(0.01)

        assert await manager.cleanup_idle_sessions() == 1
        assert manager.get_working_directory("s1") is None

    @pytest.mark.asyncio
    async def test_background_cleanup_closes_idle_sessions(self):
        manager = SessionManager(idle_timeout=0.0, cleanup_interval=0.01)
        await manager.set_working_directory("s1", "/repo")
        manager.start()

        for _ in range(100):
            if not await manager.get_all_sessions():
                break
            await asyncio.sleep(0.01)

        assert await manager.get_all_sessions() == {}
        await manager.shutdown()
        assert manager._cleanup_task is None

    @pytest.mark.asyncio
    async def test_shutdown_stops_background_cleanup(self):
        manager = SessionManager(cleanup_interval=60.0)
        manager.start()
        task = manager._cleanup_task

        await manager.shutdown()

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_shutdown(self):
        manager = SessionManager()
        await manager.get_or_create_session("s1")
        await manager.record_command("s1")
        metrics = await manager.get_metrics()
        assert metrics["s1"]["command_count"] == 1

        await manager.shutdown()
        assert await manager.get_all_sessions() == {}
