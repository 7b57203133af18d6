"""
Shared types and models for Xcode Cloud operations.

Resource models mirror the JSON:API documents returned by App Store Connect,
keeping only the attributes the monitor reads.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from common.constants import TOKEN_LIFETIME_SECONDS, TOKEN_REFRESH_BUFFER_SECONDS


class ExecutionProgress(str, Enum):
    WAITING = "WAITING"
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETE = "COMPLETE"


class CompletionStatus(str, Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ERRORED = "ERRORED"
    CANCELED = "CANCELED"
    SKIPPED = "SKIPPED"


class ProductType(str, Enum):
    APP = "APP"
    FRAMEWORK = "FRAMEWORK"


def _mask(value: str, keep: int = 4) -> str:
    if len(value) <= keep:
        return "*" * len(value)
    return f"{value[:keep]}{'*' * 4}"


@dataclass(frozen=True)
class Credentials:
    """The single active App Store Connect API key."""

    key_id: str
    issuer_id: str
    private_key: str

    def __repr__(self) -> str:
        return (
            f"Credentials(key_id={_mask(self.key_id)!r}, "
            f"issuer_id={_mask(self.issuer_id)!r}, private_key='<redacted>')"
        )

    __str__ = __repr__


@dataclass
class CachedToken:
    """A signed bearer token together with its validity window."""

    value: str
    issued_at: int
    expires_at: int

    @classmethod
    def issue(
        cls, value: str, now: int, lifetime_seconds: int = TOKEN_LIFETIME_SECONDS
    ) -> "CachedToken":
        return cls(value=value, issued_at=now, expires_at=now + lifetime_seconds)

    def is_usable(self, now: float, buffer_seconds: int = TOKEN_REFRESH_BUFFER_SECONDS) -> bool:
        """Check whether the token can still be sent.

        Args:
            now: Current epoch seconds
            buffer_seconds: Treat the token as stale this many seconds before expiry

        Returns:
            True while now < expires_at - buffer_seconds
        """
        return now < self.expires_at - buffer_seconds


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --- Ci Products ---


class CiProductAttributes(_ApiModel):
    name: str
    created_date: Optional[str] = Field(default=None, alias="createdDate")
    product_type: Optional[ProductType] = Field(default=None, alias="productType")


class CiProduct(_ApiModel):
    id: str
    type: str = "ciProducts"
    attributes: CiProductAttributes


# --- Ci Workflows ---


class CiWorkflowAttributes(_ApiModel):
    name: str
    description: Optional[str] = None
    last_modified_date: Optional[str] = Field(default=None, alias="lastModifiedDate")
    is_enabled: bool = Field(default=True, alias="isEnabled")
    is_locked_for_editing: bool = Field(default=False, alias="isLockedForEditing")
    clean: bool = False


class CiWorkflow(_ApiModel):
    id: str
    type: str = "ciWorkflows"
    attributes: CiWorkflowAttributes


# --- Ci Build Runs ---


class CommitAuthor(_ApiModel):
    display_name: Optional[str] = Field(default=None, alias="displayName")


class SourceCommit(_ApiModel):
    commit_sha: str = Field(alias="commitSha")
    message: Optional[str] = None
    author: Optional[CommitAuthor] = None


class SourceBranchOrTag(_ApiModel):
    name: str
    kind: Optional[str] = None


class CiBuildRunAttributes(_ApiModel):
    number: int
    created_date: str = Field(alias="createdDate")
    started_date: Optional[str] = Field(default=None, alias="startedDate")
    finished_date: Optional[str] = Field(default=None, alias="finishedDate")
    source_commit: Optional[SourceCommit] = Field(default=None, alias="sourceCommit")
    source_branch_or_tag: Optional[SourceBranchOrTag] = Field(
        default=None, alias="sourceBranchOrTag"
    )
    execution_progress: ExecutionProgress = Field(alias="executionProgress")
    completion_status: Optional[CompletionStatus] = Field(
        default=None, alias="completionStatus"
    )
    is_pull_request_build: bool = Field(default=False, alias="isPullRequestBuild")


class CiBuildRun(_ApiModel):
    id: str
    type: str = "ciBuildRuns"
    attributes: CiBuildRunAttributes

    @property
    def is_running(self) -> bool:
        return self.attributes.execution_progress == ExecutionProgress.RUNNING

    @property
    def branch_name(self) -> str:
        branch = self.attributes.source_branch_or_tag
        return branch.name if branch else ""


# --- Ci Build Actions ---


class CiBuildActionAttributes(_ApiModel):
    name: str
    action_type: str = Field(alias="actionType")
    started_date: Optional[str] = Field(default=None, alias="startedDate")
    finished_date: Optional[str] = Field(default=None, alias="finishedDate")
    execution_progress: ExecutionProgress = Field(alias="executionProgress")
    completion_status: Optional[CompletionStatus] = Field(
        default=None, alias="completionStatus"
    )


class CiBuildAction(_ApiModel):
    id: str
    type: str = "ciBuildActions"
    attributes: CiBuildActionAttributes


# --- Ci Artifacts ---


class CiArtifactAttributes(_ApiModel):
    file_type: Optional[str] = Field(default=None, alias="fileType")
    file_name: str = Field(alias="fileName")
    file_size: int = Field(default=0, alias="fileSize")
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")


class CiArtifact(_ApiModel):
    id: str
    type: str = "ciArtifacts"
    attributes: CiArtifactAttributes


# --- Errors ---


class ApiErrorDetail(_ApiModel):
    id: Optional[str] = None
    status: Optional[str] = None
    code: Optional[str] = None
    title: Optional[str] = None
    detail: Optional[str] = None


class ApiErrorResponse(_ApiModel):
    errors: List[ApiErrorDetail] = Field(default_factory=list)


def build_run_create_request(workflow_id: str) -> Dict[str, Any]:
    """JSON:API body that starts a build for a workflow."""
    return {
        "data": {
            "type": "ciBuildRuns",
            "relationships": {
                "workflow": {
                    "data": {
                        "type": "ciWorkflows",
                        "id": workflow_id,
                    }
                }
            },
        }
    }
