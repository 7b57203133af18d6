"""Unit tests for log rendering and LogTailSession."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from application.services.xcode_cloud.exceptions import RemoteApiError
from application.services.xcode_cloud.formatting import build_run_url
from application.services.xcode_cloud.logs.log_tail_session import (
    LogSessionState,
    LogTailSession,
)
from application.services.xcode_cloud.logs.rendering import (
    SEPARATOR,
    classify_log_lines,
    render_log_document,
)


def make_operations(build_runs, actions=None, artifacts=None):
    operations = MagicMock()
    operations.get_build_run = AsyncMock(side_effect=build_runs)
    operations.list_build_actions = AsyncMock(return_value=actions or [])
    if isinstance(artifacts, Exception):
        operations.list_artifacts = AsyncMock(side_effect=artifacts)
    else:
        operations.list_artifacts = AsyncMock(return_value=artifacts or [])
    return operations


class TestRenderLogDocument:
    """Test render_log_document."""

    def test_header_of_running_build(self, make_build_run):
        build_run = make_build_run(number=42, progress="RUNNING")

        content = render_log_document(build_run, [])

        assert content == (
            "XCODE CLOUD BUILD #42\n"
            f"{SEPARATOR}\n"
            "Status: RUNNING\n"
            "Created: 2024-05-01 09:59:00 UTC\n"
            "Started: 2024-05-01 10:00:00 UTC\n"
            "Branch: main\n"
            "Commit: abcdef1 - Fix login\n"
            f"{SEPARATOR}\n"
        )

    def test_action_block(self, make_build_run, make_action):
        build_run = make_build_run()

        content = render_log_document(build_run, [make_action()])

        assert (
            f"\n{SEPARATOR}\n"
            "STEP: Build - iOS\n"
            "Type: BUILD\n"
            "Status: COMPLETE (SUCCEEDED)\n"
            "Started: 2024-05-01 10:00:05 UTC\n"
            "Finished: 2024-05-01 10:04:05 UTC\n"
            f"{SEPARATOR}\n"
        ) in content

    def test_running_action_has_no_completion(self, make_build_run, make_action):
        content = render_log_document(
            make_build_run(), [make_action(progress="RUNNING", completion=None)]
        )

        assert "Status: RUNNING\nStarted:" in content
        assert "Finished:" not in content

    def test_trailer_with_artifacts(self, make_build_run, make_artifact):
        """Test finished builds end with the outcome and the artifact list."""
        build_run = make_build_run(
            progress="COMPLETE", completion="SUCCEEDED", finished="2024-05-01T10:05:00Z"
        )

        content = render_log_document(
            build_run, [], [make_artifact(), make_artifact("Logs.zip", 512)]
        )

        assert content.endswith(
            "\n---\n"
            "Build SUCCEEDED\n"
            "\nArtifacts (2):\n"
            "  - App.ipa (1.5 MB)\n"
            "  - Logs.zip (512 B)\n"
            f"\nOpen Artifacts in Browser: {build_run_url('run-1')}\n"
        )

    def test_trailer_without_artifacts(self, make_build_run):
        build_run = make_build_run(progress="COMPLETE", completion=None)

        content = render_log_document(build_run, [])

        assert content.endswith("\n---\nBuild UNKNOWN\n")

    def test_rendering_is_deterministic(self, make_build_run, make_action, make_artifact):
        build_run = make_build_run(progress="COMPLETE", completion="FAILED")
        actions = [make_action(), make_action("Test - iOS", "TEST", completion="FAILED")]

        first = render_log_document(build_run, actions, [make_artifact()])
        second = render_log_document(build_run, actions, [make_artifact()])

        assert first == second

    def test_minimal_build_run(self, make_build_run):
        build_run = make_build_run(branch=None, started=None)

        content = render_log_document(build_run, [])

        assert "Started:" not in content
        assert "Branch:" not in content


class TestClassifyLogLines:
    """Test classify_log_lines."""

    def test_classification(self):
        text = "\n".join(
            [
                "XCODE CLOUD BUILD #1",
                SEPARATOR,
                "STEP: Build",
                "main.swift:3: error: missing return",
                "Warning: deprecated API",
                "plain line",
            ]
        )

        result = classify_log_lines(text)

        assert result.errors == [3]
        assert result.warnings == [4]
        assert result.headers == [1, 2]


class TestLogTailSession:
    """Test LogTailSession class."""

    @pytest.mark.asyncio
    async def test_completed_build_renders_once(self, make_build_run, manual_timer):
        """Test a finished build is rendered once and never tailed."""
        build_run = make_build_run(progress="COMPLETE", completion="SUCCEEDED")
        operations = make_operations([build_run])
        on_change = MagicMock()

        session = LogTailSession(operations, "run-1", on_change=on_change, sleep=manual_timer.sleep)
        assert session.content == "Loading..."
        await session.open()
        await manual_timer.settle()

        assert session.state == LogSessionState.TERMINAL
        assert session.is_complete
        assert "Build SUCCEEDED" in session.content
        assert manual_timer.delays == []
        operations.list_artifacts.assert_awaited_once_with("run-1")
        on_change.assert_called_once_with(session)

    @pytest.mark.asyncio
    async def test_tails_until_build_finishes(self, make_build_run, manual_timer):
        """Test a running build is re-rendered every tick until it completes."""
        running = make_build_run(progress="RUNNING")
        finished = make_build_run(
            progress="COMPLETE", completion="FAILED", finished="2024-05-01T10:05:00Z"
        )
        operations = make_operations([running, running, finished])
        on_change = MagicMock()

        session = LogTailSession(operations, "run-1", on_change=on_change, sleep=manual_timer.sleep)
        await session.open()
        await manual_timer.settle()

        assert session.state == LogSessionState.ACTIVE
        assert session.is_tailing
        assert "Status: RUNNING" in session.content
        operations.list_artifacts.assert_not_awaited()

        await manual_timer.fire()
        assert session.state == LogSessionState.ACTIVE

        await manual_timer.fire()
        assert session.state == LogSessionState.TERMINAL
        assert "Build FAILED" in session.content
        assert manual_timer.delays == [5, 5]
        assert manual_timer.pending == 0
        assert on_change.call_count == 3
        operations.list_artifacts.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_initial_load_failure(self, manual_timer):
        operations = make_operations([RemoteApiError("Not Found: No build run", 404)])

        session = LogTailSession(operations, "run-1", sleep=manual_timer.sleep)
        await session.open()

        assert session.state == LogSessionState.TERMINAL
        assert session.content == "Failed to load logs: Not Found: No build run"
        assert manual_timer.delays == []

    @pytest.mark.asyncio
    async def test_tick_failure_keeps_content(self, make_build_run, manual_timer):
        """Test a failed refresh leaves the last document and keeps tailing."""
        running = make_build_run(progress="RUNNING")
        operations = make_operations([running, RemoteApiError("Server Error: down", 500)])

        session = LogTailSession(operations, "run-1", sleep=manual_timer.sleep)
        await session.open()
        await manual_timer.settle()
        before = session.content

        await manual_timer.fire()

        assert session.content == before
        assert session.state == LogSessionState.ACTIVE
        assert manual_timer.pending == 1
        session.dispose()

    @pytest.mark.asyncio
    async def test_artifact_failure_is_tolerated(self, make_build_run, manual_timer):
        build_run = make_build_run(progress="COMPLETE", completion="SUCCEEDED")
        operations = make_operations(
            [build_run], artifacts=RemoteApiError("Forbidden: no access", 403)
        )

        session = LogTailSession(operations, "run-1", sleep=manual_timer.sleep)
        await session.open()

        assert session.state == LogSessionState.TERMINAL
        assert "Build SUCCEEDED" in session.content
        assert "Artifacts" not in session.content

    @pytest.mark.asyncio
    async def test_dispose_stops_tailing(self, make_build_run, manual_timer):
        running = make_build_run(progress="RUNNING")
        operations = make_operations([running, running])
        on_change = MagicMock()

        session = LogTailSession(operations, "run-1", on_change=on_change, sleep=manual_timer.sleep)
        await session.open()
        await manual_timer.settle()

        session.dispose()
        session.dispose()
        await manual_timer.settle()

        assert session.disposed
        assert manual_timer.pending == 0
        assert operations.get_build_run.await_count == 1
        assert on_change.call_count == 1
