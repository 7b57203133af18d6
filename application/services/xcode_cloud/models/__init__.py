"""Shared models for Xcode Cloud operations."""

from application.services.xcode_cloud.models.types import (
    CachedToken,
    CiArtifact,
    CiBuildAction,
    CiBuildRun,
    CiProduct,
    CiWorkflow,
    CompletionStatus,
    Credentials,
    ExecutionProgress,
)

__all__ = [
    "CachedToken",
    "CiArtifact",
    "CiBuildAction",
    "CiBuildRun",
    "CiProduct",
    "CiWorkflow",
    "CompletionStatus",
    "Credentials",
    "ExecutionProgress",
]
