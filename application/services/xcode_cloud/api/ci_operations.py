"""
Xcode Cloud CI resource operations.
"""

import logging
from typing import List, Optional, Type, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from application.services.xcode_cloud.api.client import AppStoreConnectAPIClient
from application.services.xcode_cloud.exceptions import RemoteApiError
from application.services.xcode_cloud.models.types import (
    CiArtifact,
    CiBuildAction,
    CiBuildRun,
    CiProduct,
    CiWorkflow,
    build_run_create_request,
)
from common.constants import (
    ARTIFACTS_PAGE_LIMIT,
    BUILD_ACTIONS_PAGE_LIMIT,
    BUILD_RUNS_PAGE_LIMIT,
    PRODUCTS_PAGE_LIMIT,
    WORKFLOWS_PAGE_LIMIT,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _escape(resource_id: str) -> str:
    return quote(resource_id, safe="")


class CiOperations:
    """Handles Xcode Cloud products, workflows, build runs, actions and artifacts."""

    def __init__(self, client: AppStoreConnectAPIClient):
        """Initialize CI operations.

        Args:
            client: App Store Connect API client
        """
        self.client = client

    async def list_products(self) -> List[CiProduct]:
        response = await self.client.get("/ciProducts", params={"limit": PRODUCTS_PAGE_LIMIT})
        return [_validate(CiProduct, item) for item in _data_list(response)]

    async def list_workflows(self, product_id: str) -> List[CiWorkflow]:
        response = await self.client.get(
            f"/ciProducts/{_escape(product_id)}/workflows",
            params={"limit": WORKFLOWS_PAGE_LIMIT},
        )
        return [_validate(CiWorkflow, item) for item in _data_list(response)]

    async def list_build_runs(self, workflow_id: str) -> List[CiBuildRun]:
        """List the most recent build runs of a workflow, newest first.

        Args:
            workflow_id: Workflow ID

        Returns:
            Build runs sorted by descending build number
        """
        response = await self.client.get(
            f"/ciWorkflows/{_escape(workflow_id)}/buildRuns",
            params={"limit": BUILD_RUNS_PAGE_LIMIT, "sort": "-number"},
        )
        return [_validate(CiBuildRun, item) for item in _data_list(response)]

    async def get_build_run(self, build_run_id: str) -> CiBuildRun:
        response = await self.client.get(f"/ciBuildRuns/{_escape(build_run_id)}")
        return _validate(CiBuildRun, _data_object(response, build_run_id))

    async def trigger_build_run(self, workflow_id: str) -> CiBuildRun:
        """Start a new build of a workflow.

        Args:
            workflow_id: Workflow ID

        Returns:
            The created build run
        """
        response = await self.client.post(
            "/ciBuildRuns", data=build_run_create_request(workflow_id)
        )
        build_run = _validate(CiBuildRun, _data_object(response, workflow_id))
        logger.info(f"Triggered build #{build_run.attributes.number} for workflow {workflow_id}")
        return build_run

    async def cancel_build_run(self, build_run_id: str) -> None:
        """Cancel a build run.

        App Store Connect has no cancel verb; deleting the build run resource
        cancels it.

        Args:
            build_run_id: Build run ID
        """
        await self.client.delete(f"/ciBuildRuns/{_escape(build_run_id)}")
        logger.info(f"Cancelled build run {build_run_id}")

    async def list_build_actions(self, build_run_id: str) -> List[CiBuildAction]:
        response = await self.client.get(
            f"/ciBuildRuns/{_escape(build_run_id)}/actions",
            params={"limit": BUILD_ACTIONS_PAGE_LIMIT},
        )
        return [_validate(CiBuildAction, item) for item in _data_list(response)]

    async def list_artifacts(self, build_run_id: str) -> List[CiArtifact]:
        response = await self.client.get(
            f"/ciBuildRuns/{_escape(build_run_id)}/artifacts",
            params={"limit": ARTIFACTS_PAGE_LIMIT},
        )
        return [_validate(CiArtifact, item) for item in _data_list(response)]


def _data_list(response: Optional[dict]) -> list:
    if not response:
        return []
    data = response.get("data")
    return data if isinstance(data, list) else []


def _data_object(response: Optional[dict], resource_id: str) -> dict:
    data = response.get("data") if response else None
    if not isinstance(data, dict):
        raise RemoteApiError(f"Unexpected App Store Connect payload for {resource_id}")
    return data


def _validate(model: Type[ModelT], item: object) -> ModelT:
    try:
        return model.model_validate(item)
    except ValidationError as e:
        raise RemoteApiError(
            f"Unexpected {model.__name__} payload ({e.error_count()} validation errors)"
        ) from e
