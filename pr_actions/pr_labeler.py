"""
Label newly opened pull requests from their conventional-commit titles.

This runs once when a pull request is opened.  It only adds labels: running
it twice adds again, it doesn't replace.
"""

import re
from typing import List

from pr_actions import logger
from pr_actions.github_work import add_labels_to_pull_request, get_pull_request
from pr_actions.labels import BREAKING, DEFAULT_TYPE, DEPENDENCIES, STATUS_DRAFT, STATUS_READY
from pr_actions.types import PrId

COMMIT_TYPES = "feat|fix|docs|style|refactor|perf|test|build|ci|revert"

DEPENDENCIES_RE = re.compile(r"^(chore|fix|build)\(deps\):")
TYPE_RE = re.compile(rf"^({COMMIT_TYPES})(\(.+\))?!?:")
BREAKING_TITLE_RE = re.compile(rf"^({COMMIT_TYPES})(\(.+\))?!:")
BREAKING_BODY_MARKER = "BREAKING CHANGE:"


def title_labels(title: str, body: str | None = "") -> List[str]:
    """
    Decide the type labels for a pull request from its title and body.

    A title that isn't a conventional commit is a chore.
    """
    labels = []
    if DEPENDENCIES_RE.match(title):
        labels.append(DEPENDENCIES)
        logger.info("Detected dependency update")
    elif m := TYPE_RE.match(title):
        labels.append(m[1])
        logger.info(f"Detected conventional commit type: {m[1]}")
    else:
        labels.append(DEFAULT_TYPE)
        logger.info("No conventional commit format detected, defaulting to chore")

    if BREAKING_TITLE_RE.match(title) or BREAKING_BODY_MARKER in (body or ""):
        labels.append(BREAKING)
        logger.info("Detected breaking change")

    return labels


def label_new_pull_request(prid: PrId, title: str, body: str | None = "") -> List[str]:
    """
    Add type, breaking, and draft/ready labels to a pull request.

    All the labels are added in one request.  Returns the labels added.
    """
    logger.info(f"Analyzing PR {prid}: {title!r}")
    labels = title_labels(title, body)

    pr = get_pull_request(prid)
    if pr.get("draft", False):
        labels.append(STATUS_DRAFT)
        logger.info("PR is in draft status")
    else:
        labels.append(STATUS_READY)
        logger.info("PR is ready for review")

    add_labels_to_pull_request(prid, labels)
    return labels
