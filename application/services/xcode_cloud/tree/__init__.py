"""Sidebar tree data for products, workflows and build runs."""

from application.services.xcode_cloud.tree.build_tree import (
    BuildTreeNode,
    BuildTreeProvider,
    CollapsibleState,
    TreeItemType,
)

__all__ = [
    "BuildTreeNode",
    "BuildTreeProvider",
    "CollapsibleState",
    "TreeItemType",
]
