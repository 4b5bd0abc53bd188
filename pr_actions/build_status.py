"""
Manage the QA status label on pull requests.
"""

from typing import Dict, Optional

from pr_actions import logger
from pr_actions.label_sync import LabelFix, converge_group_label
from pr_actions.labels import QA_FAILED, QA_LABEL_NAMES, QA_PENDING, QA_RUNNING, QA_SUCCESS
from pr_actions.types import PrId

# Workflow statuses, as the workflows report them, and the label for each.
QA_LABEL_FOR_WORKFLOW_STATUS: Dict[str, str] = {
    "pending": QA_PENDING,
    "running": QA_RUNNING,
    "success": QA_SUCCESS,
    "failure": QA_FAILED,
    "cancelled": QA_FAILED,
}


def qa_label_for_status(workflow_status: str) -> Optional[str]:
    return QA_LABEL_FOR_WORKFLOW_STATUS.get((workflow_status or "").strip().lower())


def update_qa_label(prid: PrId, workflow_status: str, actions=None) -> Optional[LabelFix]:
    """
    Make the QA label on the pull request reflect `workflow_status`.

    Returns None if the status has no label.
    """
    desired = qa_label_for_status(workflow_status)
    if desired is None:
        logger.info(f"No label to apply for status: {workflow_status!r}")
        return None

    logger.info(f"Updating PR {prid} with status: {workflow_status} -> label: {desired}")
    fix = converge_group_label(prid, QA_LABEL_NAMES, desired, actions=actions)
    logger.info("Label update completed")
    return fix
