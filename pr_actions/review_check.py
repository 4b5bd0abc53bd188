"""
Work out whether a pull request is approved, and what its QA status is.

Nothing here writes to GitHub.
"""

from typing import Dict, Iterable, List, Optional

from glom import Coalesce, glom

from pr_actions import logger
from pr_actions.github_work import get_pr_label_names, get_reviews
from pr_actions.labels import QA_STATUS_FROM_LABEL_ORDER
from pr_actions.types import PrId, QaFromJobs, QaFromLabels, QaSource, QaStatus

# The event that carries a review rather than fresh job results.
REVIEW_EVENTS = {"pull_request_review"}


def approvers(reviews: Iterable[Dict], author: str) -> List[str]:
    """
    The logins of people other than `author` who approved.
    """
    # Reviews by deleted accounts have no user. GitHub shows them as "ghost".
    reviews = glom(list(reviews), [{"state": "state", "login": Coalesce("user.login", default="ghost")}])
    return [r["login"] for r in reviews if r["state"] == "APPROVED" and r["login"] != author]


def has_approval(reviews: Iterable[Dict], author: str) -> bool:
    """
    Does the pull request have an approval from someone other than its author?

    Self-approval never counts.
    """
    return bool(approvers(reviews, author))


def check_approval(prid: PrId, author: str) -> bool:
    """
    Check the reviews on a pull request for approval.
    """
    logger.info(f"Checking approval status for PR {prid} (author: {author})")
    reviews = get_reviews(prid)
    logger.info(f"Found {len(reviews)} reviews")
    approved_by = approvers(reviews, author)
    if approved_by:
        logger.info(f"PR has approval from: {', '.join(approved_by)}")
    else:
        logger.info("PR does not have approval from anyone other than the author")
    return bool(approved_by)


def qa_status_from_labels(labels: Iterable[str]) -> QaStatus:
    labels = set(labels)
    for label, status in QA_STATUS_FROM_LABEL_ORDER:
        if label in labels:
            return status
    logger.info("No QA label found, defaulting to pending")
    return QaStatus.PENDING


def qa_status_from_jobs(qa_result: Optional[str], secret_scanning_result: Optional[str] = None) -> QaStatus:
    """
    Map the QA job outcome to a QA status.

    Unknown outcomes count as failures.  Secret scanning is a non-blocking
    check, so its outcome is only reported.
    """
    logger.info(f"QA Result: {qa_result}, Secret Scanning Result: {secret_scanning_result}")
    if qa_result == "success":
        return QaStatus.SUCCESS
    elif qa_result in ("failure", "cancelled"):
        return QaStatus.FAILED
    elif qa_result == "skipped" or not qa_result:
        return QaStatus.PENDING
    else:
        logger.warning(f"Unknown QA result: {qa_result}, defaulting to failed")
        return QaStatus.FAILED


def resolve_qa_status(source: QaSource) -> QaStatus:
    """
    Determine the QA status from wherever the triggering event gives us.
    """
    if isinstance(source, QaFromLabels):
        status = qa_status_from_labels(source.labels)
        logger.info(f"QA status from labels: {status.value}")
    elif isinstance(source, QaFromJobs):
        status = qa_status_from_jobs(source.qa_result, source.secret_scanning_result)
        logger.info(f"QA status from job results: {status.value}")
    else:
        raise TypeError(f"Unknown QA status source: {source!r}")
    return status


def qa_source_for_event(
    prid: PrId,
    event_name: str,
    qa_result: Optional[str] = None,
    secret_scanning_result: Optional[str] = None,
) -> QaSource:
    """
    Decide where the QA status comes from for this event.

    Review events don't run the QA job, so the status is read back from the
    labels on the pull request.
    """
    if event_name in REVIEW_EVENTS:
        logger.info(f"Review event on PR {prid} - checking labels for QA status")
        return QaFromLabels(frozenset(get_pr_label_names(prid)))
    return QaFromJobs(qa_result, secret_scanning_result)
