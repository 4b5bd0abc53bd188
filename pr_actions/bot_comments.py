"""
The notifier leaves comments on pull requests to remember its Slack message.
This is stuff needed to do it well.
"""

import re
from typing import Iterable, Optional

from pr_actions.types import PrCommentDict

# A comment holding this (with a timestamp) points at the Slack message for
# the pull request.
SLACK_TS_INDICATOR = "<!-- slack-ts:"
SLACK_TS_RE = re.compile(r"<!-- slack-ts:([0-9.]+) -->")

# A short-lived comment claiming the right to create the Slack message.
SLACK_LOCK_COMMENT = "<!-- slack-creating-lock -->"


def extract_slack_ts(text: Optional[str]) -> Optional[str]:
    """
    Extract the Slack message timestamp from a comment's text, if any.
    """
    if text and (match := SLACK_TS_RE.search(text)):
        return match[1]
    return None


def find_slack_ts_comment(
    comments: Iterable[PrCommentDict],
    exclude_id: Optional[int] = None,
) -> Optional[PrCommentDict]:
    """
    Find the first comment that records a Slack timestamp.

    `exclude_id` is a comment id to skip, our own lock comment.
    """
    for comment in comments:
        if exclude_id is not None and comment["id"] == exclude_id:
            continue
        body = comment.get("body") or ""
        if SLACK_TS_INDICATOR in body and extract_slack_ts(body):
            return comment
    return None


def slack_ts_comment(ts: str) -> str:
    """
    The body of the comment recording the Slack message timestamp.
    """
    return f"{SLACK_TS_INDICATOR}{ts} -->\nTo view in Slack, search for: {ts}"
