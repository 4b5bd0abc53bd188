"""
To properly manipulate labels, we need to know which labels are controlled
by which action, and what they should look like. This is that information.

Within each of the QA and status groups, only one label should be on a pull
request at a time.
"""

from __future__ import annotations

import dataclasses
from typing import Tuple

from pr_actions.types import QaStatus


@dataclasses.dataclass(frozen=True)
class LabelDef:
    """The canonical definition of a label we manage."""
    name: str
    color: str
    description: str


QA_LABELS: Tuple[LabelDef, ...] = (
    LabelDef("qa:pending", "CEE0F5", "QA workflow needs to run"),
    LabelDef("qa:running", "FFA500", "QA workflow is currently running"),
    LabelDef("qa:success", "22863A", "QA workflow passed successfully"),
    LabelDef("qa:failed", "CB2431", "QA workflow failed"),
)

STATUS_LABELS: Tuple[LabelDef, ...] = (
    LabelDef("status:draft", "848484", "Pull request is in draft status"),
    LabelDef("status:ready-for-review", "FBCA04", "Pull request is ready for review"),
    LabelDef("status:approved", "28A745", "Pull request has been approved"),
    LabelDef("status:mergeable", "0E8A16", "Pull request is approved, tests pass, and ready to merge"),
    LabelDef("status:merged", "6F42C1", "Pull request has been merged"),
    LabelDef("status:abandoned", "C0C0C0", "Pull request was closed without merging"),
)

# Conventional commit types.
TYPE_LABELS: Tuple[LabelDef, ...] = (
    LabelDef("feat", "0E8A16", "New feature"),
    LabelDef("fix", "B60205", "Bug fix"),
    LabelDef("docs", "0075CA", "Documentation changes"),
    LabelDef("style", "C5DEF5", "Code style changes (formatting, etc)"),
    LabelDef("refactor", "FBF2C4", "Code refactoring"),
    LabelDef("perf", "FF6B6B", "Performance improvements"),
    LabelDef("test", "795AA0", "Test additions or modifications"),
    LabelDef("build", "727272", "Build system changes"),
    LabelDef("ci", "4A5568", "CI/CD configuration changes"),
    LabelDef("revert", "CF222E", "Revert previous commits"),
    LabelDef("chore", "F9C0C7", "Maintenance tasks"),
)

MODIFIER_LABELS: Tuple[LabelDef, ...] = (
    LabelDef("dependencies", "FF9500", "Dependency updates"),
    LabelDef("breaking", "D93F0B", "Breaking changes"),
)

ALL_LABELS: Tuple[LabelDef, ...] = TYPE_LABELS + MODIFIER_LABELS + STATUS_LABELS + QA_LABELS

QA_LABEL_NAMES = tuple(lbl.name for lbl in QA_LABELS)
STATUS_LABEL_NAMES = tuple(lbl.name for lbl in STATUS_LABELS)

QA_PENDING = "qa:pending"
QA_RUNNING = "qa:running"
QA_SUCCESS = "qa:success"
QA_FAILED = "qa:failed"

STATUS_DRAFT = "status:draft"
STATUS_READY = "status:ready-for-review"
STATUS_APPROVED = "status:approved"
STATUS_MERGEABLE = "status:mergeable"
STATUS_MERGED = "status:merged"
STATUS_ABANDONED = "status:abandoned"

DEPENDENCIES = "dependencies"
BREAKING = "breaking"
DEFAULT_TYPE = "chore"

# When reading QA status back from labels, the first one present wins.
QA_STATUS_FROM_LABEL_ORDER: Tuple[Tuple[str, QaStatus], ...] = (
    (QA_SUCCESS, QaStatus.SUCCESS),
    (QA_FAILED, QaStatus.FAILED),
    (QA_RUNNING, QaStatus.RUNNING),
    (QA_PENDING, QaStatus.PENDING),
)
