"""
Manage the status label on pull requests: draft, ready for review, approved,
mergeable, merged, or abandoned.
"""

from pr_actions import logger
from pr_actions.label_sync import LabelFix, converge_group_label
from pr_actions.labels import (
    STATUS_ABANDONED,
    STATUS_APPROVED,
    STATUS_DRAFT,
    STATUS_LABEL_NAMES,
    STATUS_MERGEABLE,
    STATUS_MERGED,
    STATUS_READY,
)
from pr_actions.types import PrId, QaStatus


def desired_status_label(
    *,
    is_draft: bool,
    has_approval: bool,
    qa_status: QaStatus,
    is_merged: bool = False,
    is_abandoned: bool = False,
) -> str:
    """
    Pick the one status label the pull request should have.

    The first matching state wins.
    """
    if is_merged:
        return STATUS_MERGED
    elif is_abandoned:
        return STATUS_ABANDONED
    elif is_draft:
        return STATUS_DRAFT
    elif has_approval and qa_status == QaStatus.SUCCESS:
        return STATUS_MERGEABLE
    elif has_approval:
        return STATUS_APPROVED
    else:
        return STATUS_READY


def update_status_label(
    prid: PrId,
    *,
    is_draft: bool,
    has_approval: bool,
    qa_status: QaStatus,
    is_merged: bool = False,
    is_abandoned: bool = False,
    actions=None,
) -> LabelFix:
    logger.info(
        f"Updating status label for PR {prid}: "
        f"{is_draft=}, {has_approval=}, qa_status={qa_status.value}, {is_merged=}, {is_abandoned=}"
    )
    desired = desired_status_label(
        is_draft=is_draft,
        has_approval=has_approval,
        qa_status=qa_status,
        is_merged=is_merged,
        is_abandoned=is_abandoned,
    )
    logger.info(f"Desired status label: {desired}")
    return converge_group_label(prid, STATUS_LABEL_NAMES, desired, actions=actions)
