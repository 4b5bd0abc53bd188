"""
Post one Slack message per pull request, and keep it up to date.

The message's timestamp is remembered in a comment on the pull request.  The
first run to get there creates the message, guarded by a lock comment, and
later runs update it in place.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional, Sequence, Tuple

import arrow

from pr_actions import logger, settings
from pr_actions.bot_comments import (
    SLACK_LOCK_COMMENT,
    extract_slack_ts,
    find_slack_ts_comment,
    slack_ts_comment,
)
from pr_actions.github_work import (
    add_comment_to_pull_request,
    delete_comment_on_pull_request,
    edit_comment_on_pull_request,
    get_pr_comments,
    get_pr_label_names,
    get_pull_request,
    get_repo,
)
from pr_actions.labels import QA_RUNNING, STATUS_DRAFT, STATUS_MERGED
from pr_actions.reactions import update_reactions
from pr_actions.slack import SlackApi, slack_error_code
from pr_actions.types import PrId
from pr_actions.utils import sentry_extra_context, sleep_millis

# Slack errors that mean our credentials are no good.  Not worth failing for.
AUTH_ERRORS = {"not_authed", "invalid_auth"}

INVALID_BLOCKS_RETRIES = 2

# The status line shows the first label found from each of these groups.
STATUS_LINE_GROUPS: Tuple[Tuple[Tuple[str, str], ...], ...] = (
    (
        ("status:draft", ":pencil2: Draft"),
        ("status:ready-for-review", ":mag: Ready for Review"),
        ("status:in-review", ":eyes: In Review"),
        ("qa:running", ":hourglass_flowing_sand: QA Running"),
        ("qa:failed", ":x: QA Failed"),
        ("qa:success", ":white_check_mark: QA Passed"),
        ("status:changes-requested", ":warning: Changes Requested"),
        ("status:approved", ":white_check_mark: Approved"),
        ("status:on-hold", ":pause_button: On Hold"),
        ("status:blocked", ":octagonal_sign: Blocked"),
        ("status:ready-to-merge", ":rocket: Ready to Merge"),
        ("status:mergeable", ":rocket: Ready to Merge"),
        ("status:merged", ":tada: Merged"),
    ),
    (
        ("priority:critical", ":rotating_light:"),
        ("priority:high", ":arrow_up:"),
        ("priority:medium", ":arrow_right:"),
        ("priority:low", ":arrow_down:"),
    ),
    (
        ("type:bug", ":bug:"),
        ("type:feature", ":sparkles:"),
        ("type:refactor", ":recycle:"),
        ("type:test", ":test_tube:"),
        ("type:docs", ":books:"),
        ("type:chore", ":wrench:"),
        ("type:style", ":art:"),
        ("type:perf", ":zap:"),
        ("type:security", ":shield:"),
        ("type:breaking", ":boom:"),
    ),
)


def escape_text(text: str) -> str:
    """Escape the characters Slack treats as control characters."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def status_line(labels: Sequence[str]) -> str:
    texts = []
    for group in STATUS_LINE_GROUPS:
        for label, text in group:
            if label in labels:
                texts.append(text)
                break
    return " ".join(texts)


def button(text: str, url: str, style: Optional[str] = None) -> Dict:
    btn = {
        "type": "button",
        "text": {"type": "plain_text", "text": text, "emoji": False},
        "url": url,
    }
    if style:
        btn["style"] = style
    return btn


@dataclasses.dataclass
class NotifierInputs:
    """What the workflow tells us about the pull request."""
    prid: PrId
    title: str
    url: str
    author: str
    author_type: str = "User"
    is_abandoned: bool = False


@dataclasses.dataclass
class PrMessage:
    """
    The Slack message for a pull request, in its current state.
    """
    inputs: NotifierInputs
    labels: List[str]
    is_merged: bool
    is_private: bool
    # Is this a message we're about to create, rather than update?
    is_new: bool

    @property
    def escaped_title(self) -> str:
        return escape_text(self.inputs.title)

    @property
    def text(self) -> str:
        return f"#{self.inputs.prid.number}: {self.escaped_title}"

    def og_image_url(self) -> str:
        """
        The GitHub preview image for the pull request.

        GitHub and Slack cache it by URL.  A fresh key is only worth it for a
        new message while QA is running, otherwise the image would flap.
        """
        if self.is_new and QA_RUNNING in self.labels:
            cache_key = f"qa-{int(arrow.utcnow().float_timestamp * 1000)}"
        else:
            cache_key = "1"
        prid = self.inputs.prid
        return f"https://opengraph.githubassets.com/{cache_key}/{prid.full_name}/pull/{prid.number}"

    def link_buttons(self) -> Dict:
        url = self.inputs.url
        return {
            "type": "actions",
            "elements": [
                button("View PR", url, style="primary"),
                button("Files", f"{url}/files"),
                button("Checks", f"{url}/checks"),
            ],
        }

    def blocks(self) -> List[Dict]:
        url = self.inputs.url
        if self.is_merged:
            return [{
                "type": "section",
                "text": {"type": "mrkdwn", "text": f":tada: {self.escaped_title}"},
                "accessory": button("View PR", url, style="primary"),
            }]
        elif self.inputs.is_abandoned:
            return [{
                "type": "section",
                "text": {"type": "mrkdwn", "text": f":file_folder: {self.escaped_title}"},
                "accessory": button("View PR", url),
            }]
        elif self.is_private:
            # The preview image isn't available for private repos.
            blocks = [
                {
                    "type": "header",
                    "text": {
                        "type": "plain_text",
                        "text": f"#{self.inputs.prid.number} {self.escaped_title}",
                        "emoji": False,
                    },
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Repository:*\n{self.inputs.prid.full_name}"},
                        {"type": "mrkdwn", "text": f"*Author:*\n{self.inputs.author}"},
                    ],
                },
            ]
            status = status_line(self.labels)
            if status:
                blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": status}]})
            blocks.append(self.link_buttons())
            return blocks
        else:
            return [
                {
                    "type": "image",
                    "image_url": self.og_image_url(),
                    "alt_text": f"PR #{self.inputs.prid.number}: {self.escaped_title}",
                },
                self.link_buttons(),
            ]

    def fallback_blocks(self) -> List[Dict]:
        """Simpler blocks, for when Slack rejects the real ones."""
        if self.is_merged or self.inputs.is_abandoned:
            return self.blocks()
        inputs = self.inputs
        return [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"*<{inputs.url}|#{inputs.prid.number} {self.escaped_title}>*\n"
                        f"_Author: {inputs.author} • Repo: {inputs.prid.full_name}_"
                    ),
                },
            },
            {"type": "actions", "elements": [button("View PR", inputs.url, style="primary")]},
        ]


def send_message(slack: SlackApi, message: PrMessage, ts: Optional[str] = None) -> Dict:
    """
    Post a new message, or update the one at `ts`.

    If Slack rejects the blocks, try again a couple of times, then fall back
    to simpler blocks.
    """
    def _send(blocks):
        if ts is None:
            return slack.post_message(message.text, blocks)
        else:
            return slack.update_message(ts, message.text, blocks)

    tries = 0
    while True:
        try:
            return _send(message.blocks())
        except Exception as exc:
            if slack_error_code(exc) != "invalid_blocks":
                raise
            if tries < INVALID_BLOCKS_RETRIES:
                tries += 1
                logger.warning(f"Slack said invalid_blocks, retry {tries}/{INVALID_BLOCKS_RETRIES}")
                sleep_millis(1000 * tries)
            else:
                logger.warning("Slack still says invalid_blocks, sending simpler blocks")
                return _send(message.fallback_blocks())


def _delete_lock(prid: PrId, lock_id: int) -> None:
    try:
        delete_comment_on_pull_request(prid, lock_id)
    except Exception as exc:    # pylint: disable=broad-exception-caught
        logger.warning(f"Couldn't delete lock comment {lock_id}: {exc}")


def create_message(slack: SlackApi, message: PrMessage) -> Optional[str]:
    """
    Create the Slack message for a pull request, unless another run beat us.

    Returns the message's timestamp, or None if it couldn't be created.
    """
    prid = message.inputs.prid
    logger.info(f"Creating new Slack message for PR {prid}")
    lock = add_comment_to_pull_request(prid, SLACK_LOCK_COMMENT)
    lock_id = lock["id"]
    logger.info(f"Created lock comment with ID: {lock_id}")

    # Did another run record a message while we were getting here?
    existing = find_slack_ts_comment(get_pr_comments(prid), exclude_id=lock_id)
    if existing is not None:
        ts = extract_slack_ts(existing["body"])
        logger.info(f"Another run already created message {ts}, using that")
        _delete_lock(prid, lock_id)
        return ts

    try:
        result = send_message(slack, message)
    except Exception:
        _delete_lock(prid, lock_id)
        raise

    ts = result.get("ts") if result else None
    if not ts:
        logger.error("Slack didn't give us a message timestamp")
        _delete_lock(prid, lock_id)
        return None

    try:
        edit_comment_on_pull_request(prid, lock_id, slack_ts_comment(ts))
    except Exception as exc:    # pylint: disable=broad-exception-caught
        # The message is posted, so carry on and fix its reactions anyway.
        logger.error(f"Couldn't record Slack timestamp {ts} on PR {prid}: {exc}")
    return ts


def is_pr_merged(prid: PrId) -> bool:
    """Ask GitHub if the pull request is merged.  Labels can lag behind."""
    try:
        merged = get_pull_request(prid).get("merged") is True
    except Exception as exc:    # pylint: disable=broad-exception-caught
        logger.error(f"Failed to check PR merged status: {exc}")
        return False
    if merged:
        logger.info("PR is merged according to GitHub API")
    return merged


def notify_slack(
    inputs: NotifierInputs,
    token: Optional[str] = None,
    channel: Optional[str] = None,
    slack: Optional[SlackApi] = None,
) -> Optional[str]:
    """
    Create or update the Slack message for a pull request, and its reactions.

    Returns the message timestamp, if there is a message.  Missing or bad
    credentials are only warned about.  Other errors are logged and raised.
    """
    token = token or settings.SLACK_BOT_TOKEN
    channel = channel or settings.SLACK_CHANNEL_ID
    prid = inputs.prid
    logger.info(f"Starting Slack PR notifier for PR {prid}")

    if slack is None:
        if not token or not channel:
            logger.warning("Missing Slack credentials; skipping PR notification and continuing.")
            return None
        slack = SlackApi(token, channel)

    sleep_millis(settings.WAIT_TIME)

    ts = None
    try:
        is_private = get_repo(prid.full_name).get("private", False)
        logger.info(f"Repository is {'private' if is_private else 'public'}")
        labels = get_pr_label_names(prid)
        logger.info(f"Found {len(labels)} PR labels: {labels}")
        is_merged = STATUS_MERGED in labels or is_pr_merged(prid)

        ts_comment = find_slack_ts_comment(get_pr_comments(prid))
        if ts_comment is not None:
            ts = extract_slack_ts(ts_comment["body"])
            logger.info(f"Found existing Slack timestamp: {ts}")

        if inputs.author_type == "Bot":
            logger.info(f"Skipping notification for bot PR from {inputs.author}")
            return ts
        if STATUS_DRAFT in labels:
            logger.info("Skipping notification for draft PR")
            return ts
        if ts is None and is_merged:
            # Nothing to update, and no point announcing it now.
            logger.info("Skipping notification for merged PR without existing message")
            return None

        message = PrMessage(
            inputs=inputs,
            labels=labels,
            is_merged=is_merged,
            is_private=is_private,
            is_new=ts is None,
        )
        if ts is None:
            ts = create_message(slack, message)
        else:
            send_message(slack, message, ts)

        if ts:
            update_reactions(slack, ts, labels, is_merged)

    except Exception as exc:
        if slack_error_code(exc) in AUTH_ERRORS:
            logger.warning("Slack authentication failed; skipping notification without failing run.")
            return None
        context = {
            "pr": str(prid),
            "pr_title": inputs.title,
            "pr_author": inputs.author,
            "author_type": inputs.author_type,
            "slack_ts": ts,
            "channel_set": bool(channel),
        }
        logger.exception(f"Slack notifier failed: {context}")
        sentry_extra_context(context)
        raise

    logger.info(f"PR {prid} processed, Slack timestamp: {ts}")
    return ts
