"""
Enable GitHub auto-merge on pull requests that are ready for it.

Auto-merge is only ever enabled here, never disabled.  If a pull request stops
being ready, we leave it alone: a person may have turned auto-merge on by hand,
and disabling it could race with a merge already underway.
"""

from enum import Enum
from typing import List

from glom import glom

from pr_actions import logger
from pr_actions.github_work import get_pull_request
from pr_actions.types import PrId, QaStatus
from pr_actions.utils import graphql_query

# The name of the mutation is used by FakeGitHub while testing.

ENABLE_AUTO_MERGE = """\
mutation EnableAutoMerge (
  $pullRequestId: ID!
  $mergeMethod: PullRequestMergeMethod!
) {
  enablePullRequestAutoMerge (input: {pullRequestId: $pullRequestId, mergeMethod: $mergeMethod}) {
    pullRequest {
      autoMergeRequest {
        enabledAt
        mergeMethod
      }
    }
  }
}
"""

MERGE_METHODS = {
    "merge": "MERGE",
    "squash": "SQUASH",
    "rebase": "REBASE",
}
DEFAULT_MERGE_METHOD = "squash"

# Errors from GitHub that just mean the world isn't how we'd like it.
# Each is (substring of the error, log level, message to log).
KNOWN_AUTO_MERGE_ERRORS = [
    ("Auto-merge is not enabled", "info", "Auto-merge is already disabled"),
    ("already enabled", "info", "Auto-merge is already enabled"),
    ("Auto-merge is not allowed", "warning",
        "Auto-merge is not allowed for this repository. Please enable it in repository settings."),
    ("Pull request is in clean status", "info", "PR is already up to date with base branch"),
    ("Pull request is in dirty status", "warning", "PR has conflicts that need to be resolved"),
]


class AutoMergeResult(Enum):
    SKIPPED_BOT = "skipped-bot"
    NOT_READY = "not-ready"
    ENABLED = "enabled"
    KNOWN_CONFLICT = "known-conflict"
    FAILED = "failed"


def graphql_merge_method(merge_method: str) -> str:
    return MERGE_METHODS.get((merge_method or "").strip().lower(), MERGE_METHODS[DEFAULT_MERGE_METHOD])


def not_mergeable_reasons(*, has_approval: bool, qa_status: QaStatus, is_draft: bool) -> List[str]:
    """
    Why isn't this pull request ready to merge?  An empty list means it is.
    """
    reasons = []
    if not has_approval:
        reasons.append("no approval")
    if qa_status != QaStatus.SUCCESS:
        reasons.append(f"QA status is {qa_status.value}")
    if is_draft:
        reasons.append("PR is a draft")
    return reasons


def enable_auto_merge(prid: PrId, merge_method: str = DEFAULT_MERGE_METHOD) -> None:
    """
    Turn on auto-merge for a pull request.
    """
    method = graphql_merge_method(merge_method)
    logger.info(f"Enabling auto-merge for PR {prid} with method: {method}")
    # The mutation needs the node id, not the number.
    pr = get_pull_request(prid)
    data = graphql_query(
        query=ENABLE_AUTO_MERGE,
        variables={"pullRequestId": pr["node_id"], "mergeMethod": method},
    )
    enabled_method = glom(data, "enablePullRequestAutoMerge.pullRequest.autoMergeRequest.mergeMethod", default=None)
    logger.info(f"Auto-merge enabled for PR {prid} ({enabled_method})")


def manage_auto_merge(
    prid: PrId,
    *,
    author: str,
    author_type: str,
    has_approval: bool,
    qa_status: QaStatus,
    is_draft: bool,
    merge_method: str = DEFAULT_MERGE_METHOD,
) -> AutoMergeResult:
    """
    Enable auto-merge if the pull request is approved, passing QA, and not a
    draft.

    This never raises: problems are logged, and the workflow carries on.
    """
    logger.info(
        f"Managing auto-merge for PR {prid}: {author=}, {author_type=}, "
        f"{has_approval=}, qa_status={qa_status.value}, {is_draft=}, {merge_method=}"
    )

    if author_type == "Bot":
        logger.info(f"Skipping auto-merge for bot PR from {author}")
        return AutoMergeResult.SKIPPED_BOT

    reasons = not_mergeable_reasons(has_approval=has_approval, qa_status=qa_status, is_draft=is_draft)
    if reasons:
        logger.info(f"PR {prid} is not ready for auto-merge. Reasons: {', '.join(reasons)}")
        return AutoMergeResult.NOT_READY

    try:
        enable_auto_merge(prid, merge_method)
    except Exception as exc:    # pylint: disable=broad-exception-caught
        message = str(exc)
        for snip, level, explanation in KNOWN_AUTO_MERGE_ERRORS:
            if snip in message:
                getattr(logger, level)(explanation)
                return AutoMergeResult.KNOWN_CONFLICT
        logger.exception(f"Error managing auto-merge for PR {prid}")
        return AutoMergeResult.FAILED

    return AutoMergeResult.ENABLED
