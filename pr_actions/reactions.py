"""
Keep the emoji reactions on a pull request's Slack message in step with its
labels.

Only the reactions we manage are touched.  Other people's reactions stay.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from pr_actions import logger, settings
from pr_actions.labels import (
    QA_FAILED,
    QA_PENDING,
    QA_RUNNING,
    QA_SUCCESS,
    STATUS_APPROVED,
    STATUS_MERGEABLE,
    STATUS_MERGED,
    STATUS_READY,
)
from pr_actions.slack import SlackApi, slack_error_code
from pr_actions.utils import sleep_millis

# status:merged is deliberately missing: merged pull requests get no reactions.
REACTION_FOR_LABEL: Dict[str, str] = {
    QA_PENDING: "hourglass_flowing_sand",
    QA_RUNNING: "runner",
    QA_SUCCESS: "white_check_mark",
    QA_FAILED: "x",
    STATUS_READY: "eyes",
    STATUS_APPROVED: "thumbsup",
    STATUS_MERGEABLE: "rocket",
}

# Only one reaction from each group at a time.
EXCLUSIVE_GROUPS: Dict[str, List[str]] = {
    "qa": ["hourglass_flowing_sand", "runner", "white_check_mark", "x"],
    "status": ["eyes", "thumbsup", "rocket"],
}

# Within a group, the first label present picks the reaction.
GROUP_PRIORITY: Dict[str, List[str]] = {
    "qa": [QA_FAILED, QA_SUCCESS, QA_RUNNING, QA_PENDING],
    "status": [STATUS_MERGED, STATUS_MERGEABLE, STATUS_APPROVED, STATUS_READY],
}

MANAGED_REACTIONS = frozenset(REACTION_FOR_LABEL.values())

QA_IN_PROGRESS = {QA_RUNNING, QA_PENDING}


def desired_reactions(labels: Iterable[str], is_merged: bool = False) -> List[str]:
    """
    The reactions the message should have, given the pull request's labels.
    """
    labels = set(labels)
    if is_merged or STATUS_MERGED in labels:
        logger.info("PR is merged - no reactions should be displayed")
        return []

    reactions = []
    for group, priority in GROUP_PRIORITY.items():
        for label in priority:
            if label in labels and label in REACTION_FOR_LABEL:
                logger.debug(f"Selected reaction {REACTION_FOR_LABEL[label]!r} for group {group!r}")
                reactions.append(REACTION_FOR_LABEL[label])
                break

    # While QA is re-running, status reactions would be stale.
    if labels & QA_IN_PROGRESS:
        logger.info("QA in progress - only showing QA reactions")
        reactions = [r for r in reactions if r in EXCLUSIVE_GROUPS["qa"]]
    return reactions


def managed_reactions_on(message: Dict) -> List[str]:
    """The managed reactions actually on a Slack message."""
    return [
        r["name"] for r in message.get("reactions") or []
        if r.get("users") and r["name"] in MANAGED_REACTIONS
    ]


@dataclass
class ReactionFix:
    """
    What happened when fixing the reactions on a message.
    """
    desired: List[str]
    current: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    verified: Optional[bool] = None
    reset: bool = False


class ReactionFixer:
    """
    Make the managed reactions on a Slack message match the labels.

    Extras are removed before missing ones are added, so a group never has two
    reactions.  If anything was written, the result is read back, and on a
    mismatch everything is reset once.
    """

    def __init__(self, slack: SlackApi, ts: str, desired: List[str]) -> None:
        self.slack = slack
        self.ts = ts
        self.fix_result = ReactionFix(desired=list(desired))

    @contextlib.contextmanager
    def saved_exceptions(self, description: str, benign: str):
        """
        Log and record errors from one reaction write.

        The `benign` Slack error means someone beat us to it, and is fine.
        """
        try:
            yield
        except Exception as exc:    # pylint: disable=broad-exception-caught
            if slack_error_code(exc) == benign:
                logger.info(f"Couldn't {description}, but that's fine ({benign})")
            else:
                logger.error(f"Failed to {description}: {exc}")
                self.fix_result.errors.append(f"Failed to {description}: {exc}")

    def _pause(self) -> None:
        sleep_millis(settings.REACTION_DELAY_MS)

    def fix(self) -> ReactionFix:
        sleep_millis(settings.REACTION_DELAY_MS)
        message = self.slack.get_message(self.ts)
        if message is None:
            logger.warning(f"No message found in Slack for timestamp: {self.ts}")
            return self.fix_result

        current = managed_reactions_on(message)
        self.fix_result.current = current
        desired = self.fix_result.desired
        to_remove = [r for r in current if r not in desired]
        to_add = [r for r in desired if r not in current]
        logger.info(f"Current reactions: {current}, desired: {desired}")
        logger.info(f"Reactions to remove: {to_remove}, to add: {to_add}")

        for name in to_remove:
            with self.saved_exceptions(f"remove reaction {name}", benign="no_reaction"):
                self.slack.remove_reaction(self.ts, name)
                self.fix_result.removed.append(name)
                self._pause()

        for name in to_add:
            with self.saved_exceptions(f"add reaction {name}", benign="already_reacted"):
                self.slack.add_reaction(self.ts, name)
                self.fix_result.added.append(name)
                self._pause()

        if self.fix_result.removed or self.fix_result.added or self.fix_result.errors:
            self.verify()
        return self.fix_result

    def verify(self) -> None:
        """
        Check the reactions ended up as desired, and reset them if not.
        """
        sleep_millis(settings.VERIFICATION_DELAY_MS)
        message = self.slack.get_message(self.ts)
        if message is None:
            logger.error(f"Message {self.ts} disappeared while fixing reactions")
            self.fix_result.verified = False
            return

        actual = managed_reactions_on(message)
        if sorted(actual) == sorted(self.fix_result.desired):
            logger.info("Reactions are correct")
            self.fix_result.verified = True
            return

        self.fix_result.verified = False
        missing = [r for r in self.fix_result.desired if r not in actual]
        extra = [r for r in actual if r not in self.fix_result.desired]
        logger.error(f"Reactions mismatch! Missing: {missing}, extra: {extra}. Resetting.")
        self.reset(actual)

    def reset(self, actual: List[str]) -> None:
        """
        Remove every managed reaction, then add all the desired ones.

        Only done once per run.  Errors are logged and we carry on.
        """
        self.fix_result.reset = True
        for name in actual:
            try:
                self.slack.remove_reaction(self.ts, name)
            except Exception as exc:    # pylint: disable=broad-exception-caught
                logger.error(f"Failed to remove {name} during reset: {exc}")
            self._pause()
        for name in self.fix_result.desired:
            try:
                self.slack.add_reaction(self.ts, name)
            except Exception as exc:    # pylint: disable=broad-exception-caught
                logger.error(f"Failed to add {name} during reset: {exc}")
            self._pause()
        logger.info("Full reset of reactions completed")


def update_reactions(slack: SlackApi, ts: str, labels: Iterable[str], is_merged: bool = False) -> Optional[ReactionFix]:
    """
    Fix the reactions on the Slack message for a pull request.

    Never raises: a problem with reactions shouldn't fail the run.
    """
    try:
        desired = desired_reactions(labels, is_merged)
        return ReactionFixer(slack, ts, desired).fix()
    except Exception:   # pylint: disable=broad-exception-caught
        logger.exception(f"Failed to manage reactions on message {ts}")
        return None
