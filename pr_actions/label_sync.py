"""
Delta-based updating of the labels in a mutually exclusive label group.

Only what's necessary is changed, to keep the noise in the GitHub UI down.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from pr_actions import logger
from pr_actions.github_work import (
    add_labels_to_pull_request,
    create_repo_label,
    get_pr_label_names,
    get_repo_labels,
    remove_label_from_pull_request,
    update_repo_label,
)
from pr_actions.labels import LabelDef
from pr_actions.types import PrId

# GitHub errors that mean another run got there first.  Each is a substring
# of the failed request's message.
LABEL_ALREADY_EXISTS = "already_exists"
LABEL_ALREADY_REMOVED = "Label does not exist"


@dataclass
class LabelSyncResult:
    """
    Return value from ensure_labels_exist.
    """
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _label_matches(existing: dict, label: LabelDef) -> bool:
    # GitHub reports colors in lowercase hex, whatever case they were set with.
    return (
        (existing.get("color") or "").lower() == label.color.lower() and
        (existing.get("description") or "") == label.description
    )


def ensure_labels_exist(repo: str, label_defs: Iterable[LabelDef]) -> LabelSyncResult:
    """
    Create the labels in the repo if needed, or fix their color and description.

    Labels are never deleted.  A failure on one label is logged, and the other
    labels are still processed.
    """
    result = LabelSyncResult()
    logger.info(f"Ensuring labels exist in {repo}...")
    existing_labels = get_repo_labels(repo)

    for label in label_defs:
        existing = existing_labels.get(label.name)
        if existing is None:
            try:
                create_repo_label(repo, label.name, label.color, label.description)
            except Exception as exc:    # pylint: disable=broad-exception-caught
                if LABEL_ALREADY_EXISTS in str(exc):
                    logger.info(f"Label {label.name} was created by someone else")
                else:
                    logger.warning(f"Failed to create label {label.name}: {exc}")
                    result.errors.append(label.name)
            else:
                logger.info(f"Created label: {label.name}")
                result.created.append(label.name)
        elif not _label_matches(existing, label):
            try:
                update_repo_label(repo, label.name, label.color, label.description)
            except Exception as exc:    # pylint: disable=broad-exception-caught
                logger.warning(f"Failed to update label {label.name}: {exc}")
                result.errors.append(label.name)
            else:
                logger.info(
                    f"Updated label: {label.name} "
                    f"(color: {existing.get('color')} -> {label.color}, "
                    f"desc: {existing.get('description')!r} -> {label.description!r})"
                )
                result.updated.append(label.name)

    return result


@dataclass
class LabelFix:
    """
    What happened when converging a label group.
    """
    desired: str
    # The group's labels that were on the pull request before we started.
    current: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.added)


class FixingActions:
    """
    Implementation for actions needed by the label fixer.

    These actions actually make the changes needed. All arguments
    must be JSON-serializable so that dry-runs can report on the
    actions.
    """

    def __init__(self, prid: PrId):
        self.prid = prid

    def remove_label(self, *, label: str) -> None:
        remove_label_from_pull_request(self.prid, label)

    def add_labels(self, *, labels: List[str]) -> None:
        add_labels_to_pull_request(self.prid, labels)


class DryRunFixingActions:
    """
    Implementation of actions for dry runs.
    """
    def __init__(self):
        self.action_calls = []

    def __getattr__(self, name):
        def fn(**kwargs):
            self.action_calls.append((name, kwargs))
        return fn


class LabelGroupFixer:
    """
    Compare the labels of one group on a pull request with the one we want,
    and make the needed changes.
    """

    def __init__(
        self,
        prid: PrId,
        group: Sequence[str],
        desired: str,
        actions: FixingActions | DryRunFixingActions | None = None,
    ) -> None:
        self.prid = prid
        self.group = group
        self.desired = desired
        self.actions = actions or FixingActions(prid)
        self.fix_result = LabelFix(desired=desired)

    @contextlib.contextmanager
    def saved_exceptions(self, description: str, benign: Optional[str] = None):
        """
        A context manager to wrap around isolatable steps.

        An exception raised in the with-block is logged and added to the
        result's `errors`, and the next step goes ahead.  An error whose
        message contains `benign` means another run did it already, and is
        fine.
        """
        try:
            yield
        except Exception as exc:    # pylint: disable=broad-exception-caught
            if benign and benign in str(exc):
                logger.info(f"Couldn't {description} on PR {self.prid}, but that's fine ({benign})")
                return
            logger.warning(f"Failed to {description} on PR {self.prid}: {exc}")
            self.fix_result.errors.append(exc)

    def fix(self, current_labels: Optional[Iterable[str]] = None) -> LabelFix:
        """
        The main routine for making needed changes.

        `current_labels` are the labels on the pull request, read from GitHub
        if not provided.
        """
        if current_labels is None:
            current_labels = get_pr_label_names(self.prid)
        current = [lbl for lbl in current_labels if lbl in self.group]
        self.fix_result.current = current
        logger.info(f"Current {self.desired.partition(':')[0]} labels on PR {self.prid}: {current}")
        logger.info(f"Desired label: {self.desired}")

        if current == [self.desired]:
            logger.info("PR already has the correct label, no changes needed")
            return self.fix_result

        for label in current:
            if label == self.desired:
                continue
            with self.saved_exceptions(f"remove label {label}", benign=LABEL_ALREADY_REMOVED):
                self.actions.remove_label(label=label)
                self.fix_result.removed.append(label)

        if self.desired not in current:
            with self.saved_exceptions(f"add label {self.desired}"):
                self.actions.add_labels(labels=[self.desired])
                self.fix_result.added.append(self.desired)

        return self.fix_result


def converge_group_label(
    prid: PrId,
    group: Sequence[str],
    desired: str,
    actions: FixingActions | DryRunFixingActions | None = None,
) -> LabelFix:
    """
    Make `desired` the only label from `group` on the pull request.
    """
    return LabelGroupFixer(prid, group, desired, actions=actions).fix()
