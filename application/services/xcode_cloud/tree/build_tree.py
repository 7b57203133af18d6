"""
Build tree data.

Produces the three-level hierarchy the host renders in its sidebar:
products at the root, workflows under a product, and the latest build runs
under a workflow. Nodes are plain data; the host decides how to draw them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from application.services.xcode_cloud.api.ci_operations import CiOperations
from application.services.xcode_cloud.auth.token_cache import TokenCache
from application.services.xcode_cloud.exceptions import XcodeCloudError
from application.services.xcode_cloud.formatting import (
    build_status_icon,
    format_duration,
    format_timestamp,
)
from application.services.xcode_cloud.models.types import (
    CiBuildRun,
    CiProduct,
    CiWorkflow,
    ExecutionProgress,
)
from application.services.xcode_cloud.monitoring.notifications import Notifier

logger = logging.getLogger(__name__)

SIGN_IN_MESSAGE = "Sign in to view Xcode Cloud builds"


class TreeItemType(str, Enum):
    PRODUCT = "product"
    WORKFLOW = "workflow"
    BUILD_RUN = "buildRun"


class CollapsibleState(str, Enum):
    NONE = "none"
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


@dataclass
class BuildTreeNode:
    """One row of the build tree."""

    label: str
    item_type: TreeItemType
    item_id: str
    collapsible_state: CollapsibleState
    parent_id: Optional[str] = None
    description: str = ""
    tooltip: str = ""
    context_value: str = ""
    icon: Optional[str] = None
    product: Optional[CiProduct] = None
    workflow: Optional[CiWorkflow] = None
    build_run: Optional[CiBuildRun] = None


def build_run_status(build_run: CiBuildRun) -> str:
    attrs = build_run.attributes
    if attrs.execution_progress == ExecutionProgress.COMPLETE:
        return attrs.completion_status.value if attrs.completion_status else "UNKNOWN"
    return attrs.execution_progress.value


def product_node(product: CiProduct) -> BuildTreeNode:
    attrs = product.attributes
    product_type = attrs.product_type.value if attrs.product_type else "UNKNOWN"
    return BuildTreeNode(
        label=attrs.name,
        item_type=TreeItemType.PRODUCT,
        item_id=product.id,
        collapsible_state=CollapsibleState.EXPANDED,
        tooltip=f"{attrs.name} ({product_type})",
        context_value="product",
        icon="package",
        product=product,
    )


def workflow_node(workflow: CiWorkflow, product_id: str) -> BuildTreeNode:
    attrs = workflow.attributes
    return BuildTreeNode(
        label=attrs.name,
        item_type=TreeItemType.WORKFLOW,
        item_id=workflow.id,
        collapsible_state=CollapsibleState.COLLAPSED,
        parent_id=product_id,
        tooltip=attrs.description or attrs.name,
        context_value="workflow",
        icon="gear",
        workflow=workflow,
    )


def build_run_node(
    build_run: CiBuildRun, workflow_id: str, now: Optional[datetime] = None
) -> BuildTreeNode:
    """
    Create the tree node for a build run.

    Args:
        build_run: Build run to display
        workflow_id: Parent workflow ID
        now: Reference time for the duration of unfinished builds

    Returns:
        Leaf node labelled '{icon} #{number}'
    """
    attrs = build_run.attributes
    icon = build_status_icon(attrs.execution_progress, attrs.completion_status)
    branch = build_run.branch_name
    duration = format_duration(attrs.started_date, attrs.finished_date, now=now)
    status = build_run_status(build_run)

    if attrs.execution_progress == ExecutionProgress.RUNNING:
        context_value = "buildRun-running"
    else:
        context_value = f"buildRun-{status.lower()}"

    tooltip = f"**Build #{attrs.number}**\n\nStatus: {status}\n\n"
    if branch:
        tooltip += f"Branch: `{branch}`\n\n"
    if attrs.source_commit:
        tooltip += (
            f"Commit: `{attrs.source_commit.commit_sha[:7]}` "
            f"{attrs.source_commit.message or ''}\n\n"
        )
    if duration:
        tooltip += f"Duration: {duration}\n\n"
    tooltip += f"Created: {format_timestamp(attrs.created_date)}"

    return BuildTreeNode(
        label=f"{icon} #{attrs.number}",
        item_type=TreeItemType.BUILD_RUN,
        item_id=build_run.id,
        collapsible_state=CollapsibleState.NONE,
        parent_id=workflow_id,
        description=" · ".join(part for part in (branch, duration) if part),
        tooltip=tooltip,
        context_value=context_value,
        build_run=build_run,
    )


class BuildTreeProvider:
    """Lazily loads the product / workflow / build run hierarchy."""

    def __init__(self, operations: CiOperations, token_cache: TokenCache, notifier: Notifier):
        self.operations = operations
        self.token_cache = token_cache
        self.notifier = notifier
        self.message: Optional[str] = None
        self.last_refreshed: Optional[datetime] = None
        self._listeners: List[Callable[[], None]] = []

    def on_did_change(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def refresh(self) -> None:
        """Mark the tree stale so the host re-reads it."""
        self.last_refreshed = datetime.now(timezone.utc)
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Tree change listener failed: {e}")

    async def get_children(self, parent: Optional[BuildTreeNode] = None) -> List[BuildTreeNode]:
        """
        Load the children of a node.

        Args:
            parent: Node being expanded, or None for the root

        Returns:
            Child nodes; empty when signed out or when loading failed
        """
        if not await self.token_cache.is_authenticated():
            self.message = SIGN_IN_MESSAGE
            return []
        self.message = None

        try:
            if parent is None:
                products = await self.operations.list_products()
                return [product_node(product) for product in products]
            if parent.item_type == TreeItemType.PRODUCT:
                workflows = await self.operations.list_workflows(parent.item_id)
                return [workflow_node(workflow, parent.item_id) for workflow in workflows]
            if parent.item_type == TreeItemType.WORKFLOW:
                build_runs = await self.operations.list_build_runs(parent.item_id)
                now = datetime.now(timezone.utc)
                return [build_run_node(run, parent.item_id, now=now) for run in build_runs]
        except XcodeCloudError as e:
            logger.error(f"Failed to load tree data: {e}")
            self.notifier.error(f"Failed to load tree data: {e}")

        return []
