"""Shared fixtures for Xcode Cloud tests."""

import asyncio
from typing import List

import pytest

from application.services.xcode_cloud.models.types import (
    CiArtifact,
    CiBuildAction,
    CiBuildRun,
)
from common.auth.secret_store import InMemorySecretStore
from common.constants import (
    SECRET_KEY_API_KEY_ID,
    SECRET_KEY_ISSUER_ID,
    SECRET_KEY_PRIVATE_KEY,
)


class ManualTimer:
    """Replacement for asyncio.sleep whose waits only end when fired."""

    def __init__(self):
        self.delays: List[float] = []
        self._waiters: List[asyncio.Future] = []

    async def sleep(self, seconds: float) -> None:
        self.delays.append(seconds)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def fire(self) -> None:
        """Wake the oldest pending sleeper and let the loop settle."""
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)
                break
        await settle()

    async def settle(self) -> None:
        await settle()


async def settle(rounds: int = 50) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def manual_timer():
    return ManualTimer()


@pytest.fixture
def signed_in_store(credentials):
    return InMemorySecretStore(
        {
            SECRET_KEY_API_KEY_ID: credentials.key_id,
            SECRET_KEY_ISSUER_ID: credentials.issuer_id,
            SECRET_KEY_PRIVATE_KEY: credentials.private_key,
        }
    )


def build_run_payload(
    build_run_id="run-1",
    number=42,
    progress="RUNNING",
    completion=None,
    branch="main",
    created="2024-05-01T09:59:00Z",
    started="2024-05-01T10:00:00Z",
    finished=None,
):
    attributes = {
        "number": number,
        "createdDate": created,
        "executionProgress": progress,
        "isPullRequestBuild": False,
        "sourceCommit": {"commitSha": "abcdef1234567890", "message": "Fix login"},
    }
    if completion:
        attributes["completionStatus"] = completion
    if branch:
        attributes["sourceBranchOrTag"] = {"name": branch, "kind": "BRANCH"}
    if started:
        attributes["startedDate"] = started
    if finished:
        attributes["finishedDate"] = finished
    return {"id": build_run_id, "type": "ciBuildRuns", "attributes": attributes}


@pytest.fixture
def make_build_run():
    def _make(**kwargs) -> CiBuildRun:
        return CiBuildRun.model_validate(build_run_payload(**kwargs))

    return _make


@pytest.fixture
def make_action():
    def _make(
        name="Build - iOS",
        action_type="BUILD",
        progress="COMPLETE",
        completion="SUCCEEDED",
    ) -> CiBuildAction:
        attributes = {
            "name": name,
            "actionType": action_type,
            "executionProgress": progress,
            "startedDate": "2024-05-01T10:00:05Z",
        }
        if completion:
            attributes["completionStatus"] = completion
            attributes["finishedDate"] = "2024-05-01T10:04:05Z"
        return CiBuildAction.model_validate(
            {"id": f"action-{name}", "type": "ciBuildActions", "attributes": attributes}
        )

    return _make


@pytest.fixture
def make_artifact():
    def _make(file_name="App.ipa", file_size=1572864) -> CiArtifact:
        return CiArtifact.model_validate(
            {
                "id": f"artifact-{file_name}",
                "type": "ciArtifacts",
                "attributes": {
                    "fileType": "ARCHIVE",
                    "fileName": file_name,
                    "fileSize": file_size,
                    "downloadUrl": f"https://example.test/{file_name}",
                },
            }
        )

    return _make


@pytest.fixture
def run_payload():
    """Factory for raw ciBuildRuns JSON resources."""
    return build_run_payload
