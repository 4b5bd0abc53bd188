"""
The command line the workflows run: `pr-actions <command>`.

Every option can also come from the environment variable the composite
actions set.
"""

import os

import click
import sentry_sdk

from pr_actions import logger, set_log_level
from pr_actions.auto_merge import DEFAULT_MERGE_METHOD, manage_auto_merge
from pr_actions.build_status import update_qa_label
from pr_actions.label_sync import DryRunFixingActions, ensure_labels_exist
from pr_actions.labels import ALL_LABELS, QA_LABELS, STATUS_LABELS
from pr_actions.pr_labeler import label_new_pull_request
from pr_actions.pr_status import update_status_label
from pr_actions.review_check import check_approval, qa_source_for_event, resolve_qa_status
from pr_actions.slack_notifier import NotifierInputs, notify_slack
from pr_actions.types import PrId, QaStatus
from pr_actions.utils import set_action_output

QA_STATUS_CHOICE = click.Choice([s.value for s in QaStatus], case_sensitive=False)


def pr_options(fn):
    """The options every command needs to find its pull request."""
    fn = click.option("--repo", envvar="GITHUB_REPOSITORY", required=True, help="owner/name of the repo.")(fn)
    fn = click.option("--pr-number", envvar="PR_NUMBER", type=int, required=True)(fn)
    return fn


def report_dry_run(actions):
    click.echo("**Dry run only** The following actions would have been performed:")
    for name, kwargs in actions.action_calls:
        click.echo(f"* {name}: {kwargs}")


@click.group()
@click.option("--log-level", envvar="LOG_LEVEL", default="error", help="error, warn, info, or debug.")
def cli(log_level):
    """
    Manage pull request labels, auto-merge, and Slack notifications.
    """
    set_log_level(log_level)
    if os.environ.get("SENTRY_DSN"):
        sentry_sdk.init(dsn=os.environ["SENTRY_DSN"])


@cli.command("review-check")
@pr_options
@click.option("--author", envvar="PR_AUTHOR", required=True)
@click.option("--event-name", envvar="GITHUB_EVENT_NAME", default="pull_request")
@click.option("--qa-result", envvar="QA_RESULT", default="")
@click.option("--secret-scanning-result", envvar="SECRET_SCANNING_RESULT", default="")
def review_check(repo, pr_number, author, event_name, qa_result, secret_scanning_result):
    """
    Work out approval and QA status, as step outputs.
    """
    prid = PrId(repo, pr_number)
    approved = check_approval(prid, author)
    source = qa_source_for_event(prid, event_name, qa_result or None, secret_scanning_result or None)
    qa_status = resolve_qa_status(source)
    set_action_output("has_approval", approved)
    set_action_output("qa_status", qa_status.value)


@cli.command("qa-label")
@pr_options
@click.option("--status", envvar="STATUS", required=True, help="The QA workflow status.")
@click.option("--dry-run", is_flag=True)
def qa_label(repo, pr_number, status, dry_run):
    """
    Make the QA label on a pull request match the workflow status.
    """
    prid = PrId(repo, pr_number)
    actions = DryRunFixingActions() if dry_run else None
    if not dry_run:
        ensure_labels_exist(repo, QA_LABELS)
    update_qa_label(prid, status, actions=actions)
    if dry_run:
        report_dry_run(actions)


@cli.command("status-label")
@pr_options
@click.option("--is-draft", envvar="IS_DRAFT", type=click.BOOL, default=False)
@click.option("--has-approval", envvar="HAS_APPROVAL", type=click.BOOL, default=False)
@click.option("--qa-status", envvar="QA_STATUS", type=QA_STATUS_CHOICE, default="pending")
@click.option("--is-merged", envvar="IS_MERGED", type=click.BOOL, default=False)
@click.option("--is-abandoned", envvar="IS_ABANDONED", type=click.BOOL, default=False)
@click.option("--dry-run", is_flag=True)
def status_label(repo, pr_number, is_draft, has_approval, qa_status, is_merged, is_abandoned, dry_run):
    """
    Make the status label on a pull request match its state.
    """
    prid = PrId(repo, pr_number)
    actions = DryRunFixingActions() if dry_run else None
    if not dry_run:
        ensure_labels_exist(repo, STATUS_LABELS)
    update_status_label(
        prid,
        is_draft=is_draft,
        has_approval=has_approval,
        qa_status=QaStatus(qa_status.lower()),
        is_merged=is_merged,
        is_abandoned=is_abandoned,
        actions=actions,
    )
    if dry_run:
        report_dry_run(actions)


@cli.command("pr-labeler")
@pr_options
@click.option("--title", envvar="PR_TITLE", required=True)
@click.option("--body", envvar="PR_BODY", default="")
def pr_labeler(repo, pr_number, title, body):
    """
    Label a newly opened pull request from its title.
    """
    ensure_labels_exist(repo, ALL_LABELS)
    labels = label_new_pull_request(PrId(repo, pr_number), title, body)
    click.echo(f"Added labels: {', '.join(labels)}")


@cli.command("auto-merge")
@pr_options
@click.option("--author", envvar="PR_AUTHOR", default="")
@click.option("--author-type", envvar="PR_AUTHOR_TYPE", default="User")
@click.option("--has-approval", envvar="HAS_APPROVAL", type=click.BOOL, default=False)
@click.option("--qa-status", envvar="QA_STATUS", type=QA_STATUS_CHOICE, default="pending")
@click.option("--is-draft", envvar="IS_DRAFT", type=click.BOOL, default=False)
@click.option("--merge-method", envvar="MERGE_METHOD", default=DEFAULT_MERGE_METHOD)
def auto_merge(repo, pr_number, author, author_type, has_approval, qa_status, is_draft, merge_method):
    """
    Enable auto-merge if the pull request is ready.  Never fails the job.
    """
    result = manage_auto_merge(
        PrId(repo, pr_number),
        author=author,
        author_type=author_type,
        has_approval=has_approval,
        qa_status=QaStatus(qa_status.lower()),
        is_draft=is_draft,
        merge_method=merge_method,
    )
    logger.info(f"Auto-merge result: {result.value}")


@cli.command("slack-notify")
@pr_options
@click.option("--title", envvar="PR_TITLE", required=True)
@click.option("--url", envvar="PR_URL", required=True)
@click.option("--author", envvar="PR_AUTHOR", default="")
@click.option("--author-type", envvar="PR_AUTHOR_TYPE", default="User")
@click.option("--is-abandoned", envvar="IS_ABANDONED", type=click.BOOL, default=False)
@click.option("--slack-token", envvar="SLACK_BOT_TOKEN", default=None)
@click.option("--slack-channel", envvar="SLACK_CHANNEL_ID", default=None)
def slack_notify(repo, pr_number, title, url, author, author_type, is_abandoned, slack_token, slack_channel):
    """
    Create or update the pull request's Slack message.
    """
    inputs = NotifierInputs(
        prid=PrId(repo, pr_number),
        title=title,
        url=url,
        author=author,
        author_type=author_type,
        is_abandoned=is_abandoned,
    )
    notify_slack(inputs, token=slack_token, channel=slack_channel)


if __name__ == "__main__":
    cli()
