"""
Build state transition detection.

The watcher remembers the last seen state key of every build run and reports
runs that moved into a completed state since the previous batch. The first
batch only seeds the table, so builds that were already finished when the
monitor started never produce events.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from application.services.xcode_cloud.models.types import (
    CiBuildRun,
    CompletionStatus,
    ExecutionProgress,
)

logger = logging.getLogger(__name__)


def build_state_key(build_run: CiBuildRun) -> str:
    attrs = build_run.attributes
    completion = attrs.completion_status.value if attrs.completion_status else ""
    return f"{attrs.execution_progress.value}:{completion}"


@dataclass
class BuildTransition:
    """A build run that reached a completed state."""

    build_run: CiBuildRun
    previous_key: str
    current_key: str

    @property
    def completion_status(self) -> Optional[CompletionStatus]:
        return self.build_run.attributes.completion_status


class TransitionWatcher:
    """Detects build runs completing between two polls."""

    def __init__(self):
        self._known_states: Dict[str, str] = {}
        self._initialized = False
        self._listeners: List[Callable[[BuildTransition], None]] = []

    @property
    def initialized(self) -> bool:
        return self._initialized

    def known_state(self, build_run_id: str) -> Optional[str]:
        return self._known_states.get(build_run_id)

    def on_transition(self, listener: Callable[[BuildTransition], None]) -> Callable[[], None]:
        """Register a listener for completion events.

        Returns:
            A function that unregisters the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def observe(self, build_runs: Iterable[CiBuildRun]) -> List[BuildTransition]:
        """
        Record a batch of build runs and report completions.

        Args:
            build_runs: Every build run fetched by one refresh

        Returns:
            Transitions into COMPLETE since the previous batch; always empty
            for the first batch
        """
        transitions: List[BuildTransition] = []

        for build_run in build_runs:
            current_key = build_state_key(build_run)
            previous_key = self._known_states.get(build_run.id)

            if (
                self._initialized
                and previous_key
                and previous_key != current_key
                and build_run.attributes.execution_progress == ExecutionProgress.COMPLETE
            ):
                transitions.append(BuildTransition(build_run, previous_key, current_key))

            self._known_states[build_run.id] = current_key

        self._initialized = True

        for transition in transitions:
            logger.info(
                f"Build #{transition.build_run.attributes.number} changed "
                f"{transition.previous_key} -> {transition.current_key}"
            )
            self._emit(transition)

        return transitions

    def _emit(self, transition: BuildTransition) -> None:
        for listener in list(self._listeners):
            try:
                listener(transition)
            except Exception as e:
                logger.error(f"Transition listener failed: {e}")
