"""
Log document rendering.

The document for a build run is rebuilt from scratch on every refresh, so the
output must depend only on its inputs: timestamps are rendered in UTC and no
wall-clock value is read here.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from application.services.xcode_cloud.formatting import (
    build_run_url,
    format_bytes,
    format_timestamp,
)
from application.services.xcode_cloud.models.types import (
    CiArtifact,
    CiBuildAction,
    CiBuildRun,
)

SEPARATOR = "=" * 60


def render_header(build_run: CiBuildRun) -> str:
    attrs = build_run.attributes
    lines = [
        f"XCODE CLOUD BUILD #{attrs.number}",
        SEPARATOR,
        f"Status: {attrs.execution_progress.value}",
        f"Created: {format_timestamp(attrs.created_date)}",
    ]
    if attrs.started_date:
        lines.append(f"Started: {format_timestamp(attrs.started_date)}")
    if attrs.source_branch_or_tag:
        lines.append(f"Branch: {attrs.source_branch_or_tag.name}")
    if attrs.source_commit:
        commit = f"Commit: {attrs.source_commit.commit_sha[:7]}"
        if attrs.source_commit.message:
            commit += f" - {attrs.source_commit.message}"
        lines.append(commit)
    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


def render_action(action: CiBuildAction) -> str:
    attrs = action.attributes
    status = f"Status: {attrs.execution_progress.value}"
    if attrs.completion_status:
        status += f" ({attrs.completion_status.value})"

    lines = [
        "",
        SEPARATOR,
        f"STEP: {attrs.name}",
        f"Type: {attrs.action_type}",
        status,
    ]
    if attrs.started_date:
        lines.append(f"Started: {format_timestamp(attrs.started_date)}")
    if attrs.finished_date:
        lines.append(f"Finished: {format_timestamp(attrs.finished_date)}")
    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


def render_trailer(build_run: CiBuildRun, artifacts: Sequence[CiArtifact]) -> str:
    completion = build_run.attributes.completion_status
    content = "\n---\n"
    content += f"Build {completion.value if completion else 'UNKNOWN'}\n"

    if artifacts:
        content += f"\nArtifacts ({len(artifacts)}):\n"
        for artifact in artifacts:
            content += (
                f"  - {artifact.attributes.file_name} "
                f"({format_bytes(artifact.attributes.file_size)})\n"
            )
        content += f"\nOpen Artifacts in Browser: {build_run_url(build_run.id)}\n"
    return content


def render_log_document(
    build_run: CiBuildRun,
    actions: Sequence[CiBuildAction],
    artifacts: Sequence[CiArtifact] = (),
) -> str:
    """
    Render the full log document of a build run.

    Args:
        build_run: Build run metadata
        actions: Build actions in the order the API listed them
        artifacts: Artifacts; only shown once the build stopped running

    Returns:
        Document text
    """
    content = render_header(build_run)
    for action in actions:
        content += render_action(action)
    if not build_run.is_running:
        content += render_trailer(build_run, artifacts)
    return content


@dataclass
class LogLineClassification:
    """Line indices a host can decorate."""

    errors: List[int] = field(default_factory=list)
    warnings: List[int] = field(default_factory=list)
    headers: List[int] = field(default_factory=list)


def classify_log_lines(text: str) -> LogLineClassification:
    classification = LogLineClassification()
    for index, line in enumerate(text.split("\n")):
        lowered = line.lower()
        if "error:" in lowered or "error :" in lowered:
            classification.errors.append(index)
        elif "warning:" in lowered or "warning :" in lowered:
            classification.warnings.append(index)
        elif line.startswith("STEP:") or line.startswith("==="):
            classification.headers.append(index)
    return classification
