"""Types specific to pr_actions."""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Dict, FrozenSet, Optional

# A pull request as described by a JSON object.
PrDict = Dict

# A pull request comment as described by a JSON object.
PrCommentDict = Dict


@dataclasses.dataclass(frozen=True)
class PrId:
    """An id of a pull request, with a repo full_name and an id."""
    full_name: str
    number: int

    def __str__(self):
        return f"{self.full_name}#{self.number}"


class QaStatus(Enum):
    """
    The outcome of the automated checks on a pull request.

    Never stored: recomputed on every run from labels or job results.
    """
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


# Where the QA status comes from depends on the event that triggered us.
# Review events have no fresh job results, so they read back the label.
# Pull request events have the results of the QA jobs.

@dataclasses.dataclass(frozen=True)
class QaFromLabels:
    """QA status as recorded in the labels on the pull request."""
    labels: FrozenSet[str]


@dataclasses.dataclass(frozen=True)
class QaFromJobs:
    """QA status from the outcomes of the QA and secret-scanning jobs."""
    qa_result: Optional[str]
    secret_scanning_result: Optional[str] = None


QaSource = QaFromLabels | QaFromJobs
