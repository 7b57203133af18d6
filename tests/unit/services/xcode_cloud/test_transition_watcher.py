"""Unit tests for TransitionWatcher and build completion notifications."""

from unittest.mock import MagicMock

from application.services.xcode_cloud.monitoring.notifications import (
    BuildCompletionNotifier,
    LoggingNotifier,
    Notifier,
    completion_message,
)
from application.services.xcode_cloud.monitoring.transition_watcher import (
    BuildTransition,
    TransitionWatcher,
    build_state_key,
)
from common.config.config import XcodeCloudSettings


class TestTransitionWatcher:
    """Test TransitionWatcher class."""

    def test_state_key(self, make_build_run):
        assert build_state_key(make_build_run(progress="RUNNING")) == "RUNNING:"
        assert (
            build_state_key(make_build_run(progress="COMPLETE", completion="FAILED"))
            == "COMPLETE:FAILED"
        )

    def test_first_batch_is_silent(self, make_build_run):
        """Test builds already finished at startup never produce events."""
        watcher = TransitionWatcher()

        events = watcher.observe([make_build_run(progress="COMPLETE", completion="SUCCEEDED")])

        assert events == []
        assert watcher.initialized
        assert watcher.known_state("run-1") == "COMPLETE:SUCCEEDED"

    def test_running_to_complete(self, make_build_run):
        watcher = TransitionWatcher()
        listener = MagicMock()
        watcher.on_transition(listener)

        watcher.observe([make_build_run(progress="RUNNING")])
        events = watcher.observe([make_build_run(progress="COMPLETE", completion="SUCCEEDED")])

        assert len(events) == 1
        assert events[0].previous_key == "RUNNING:"
        assert events[0].current_key == "COMPLETE:SUCCEEDED"
        listener.assert_called_once_with(events[0])

    def test_unchanged_state_is_silent(self, make_build_run):
        watcher = TransitionWatcher()
        complete = make_build_run(progress="COMPLETE", completion="FAILED")

        watcher.observe([complete])
        assert watcher.observe([complete]) == []

    def test_new_build_already_complete_is_silent(self, make_build_run):
        """Test a run first seen after startup needs a previous state to fire."""
        watcher = TransitionWatcher()

        watcher.observe([])
        events = watcher.observe(
            [make_build_run(build_run_id="run-9", progress="COMPLETE", completion="SUCCEEDED")]
        )

        assert events == []

    def test_transition_to_running_is_silent(self, make_build_run):
        watcher = TransitionWatcher()

        watcher.observe([make_build_run(progress="PENDING")])
        events = watcher.observe([make_build_run(progress="RUNNING")])

        assert events == []
        assert watcher.known_state("run-1") == "RUNNING:"

    def test_listener_errors_are_contained(self, make_build_run):
        watcher = TransitionWatcher()
        failing = MagicMock(side_effect=RuntimeError("listener bug"))
        healthy = MagicMock()
        watcher.on_transition(failing)
        watcher.on_transition(healthy)

        watcher.observe([make_build_run(progress="RUNNING")])
        watcher.observe([make_build_run(progress="COMPLETE", completion="CANCELED")])

        healthy.assert_called_once()

    def test_unsubscribe(self, make_build_run):
        watcher = TransitionWatcher()
        listener = MagicMock()
        unsubscribe = watcher.on_transition(listener)
        unsubscribe()

        watcher.observe([make_build_run(progress="RUNNING")])
        watcher.observe([make_build_run(progress="COMPLETE", completion="SUCCEEDED")])

        listener.assert_not_called()


def transition(make_build_run, completion, branch="main"):
    build_run = make_build_run(number=7, progress="COMPLETE", completion=completion, branch=branch)
    return BuildTransition(build_run, "RUNNING:", build_state_key(build_run))


class TestBuildCompletionNotifier:
    """Test BuildCompletionNotifier class."""

    def test_messages(self, make_build_run):
        assert completion_message(transition(make_build_run, "SUCCEEDED")) == "Build #7 (main) succeeded."
        assert completion_message(transition(make_build_run, "FAILED")) == "Build #7 (main) failed."
        assert completion_message(transition(make_build_run, "ERRORED")) == "Build #7 (main) failed."
        assert (
            completion_message(transition(make_build_run, "CANCELED"))
            == "Build #7 (main) was canceled."
        )
        assert completion_message(transition(make_build_run, "SKIPPED")) is None

    def test_message_without_branch(self, make_build_run):
        assert (
            completion_message(transition(make_build_run, "SUCCEEDED", branch=None))
            == "Build #7 succeeded."
        )

    def test_severity_per_outcome(self, make_build_run):
        notifier = MagicMock(spec=Notifier)
        completion = BuildCompletionNotifier(notifier, XcodeCloudSettings())

        completion(transition(make_build_run, "SUCCEEDED"))
        completion(transition(make_build_run, "ERRORED"))
        completion(transition(make_build_run, "CANCELED"))
        completion(transition(make_build_run, "SKIPPED"))

        notifier.info.assert_called_once_with("Build #7 (main) succeeded.")
        notifier.error.assert_called_once_with("Build #7 (main) failed.")
        notifier.warning.assert_called_once_with("Build #7 (main) was canceled.")

    def test_muted_by_settings(self, make_build_run):
        notifier = MagicMock(spec=Notifier)
        completion = BuildCompletionNotifier(
            notifier, XcodeCloudSettings(notify_on_build_complete=False)
        )

        completion(transition(make_build_run, "FAILED"))

        notifier.error.assert_not_called()

    def test_logging_notifier(self, caplog):
        notifier = LoggingNotifier()

        with caplog.at_level("INFO", logger="xcode_cloud.notifications"):
            notifier.info("Build canceled.")
            notifier.error("Failed to cancel build")

        assert "Build canceled." in caplog.text
        assert "Failed to cancel build" in caplog.text
