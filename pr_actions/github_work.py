"""
Operations on GitHub data.

Everything is read fresh from GitHub on every call: the actions are
stateless, and nothing is cached between calls.
"""

from typing import Any, Dict, Iterable, List
from urllib.parse import quote

from pr_actions import logger
from pr_actions.auth import get_github_session
from pr_actions.types import PrCommentDict, PrDict, PrId
from pr_actions.utils import log_check_response, paginated_get, text_summary


def get_repo(repo: str) -> Dict[str, Any]:
    """Get the JSON description of a repo."""
    resp = get_github_session().get(f"/repos/{repo}")
    log_check_response(resp)
    return resp.json()


def get_pull_request(prid: PrId) -> PrDict:
    """Get the full JSON description of a pull request."""
    resp = get_github_session().get(f"/repos/{prid.full_name}/pulls/{prid.number}")
    log_check_response(resp)
    return resp.json()


def get_reviews(prid: PrId) -> List[Dict[str, Any]]:
    """Get all the reviews on a pull request."""
    url = f"/repos/{prid.full_name}/pulls/{prid.number}/reviews"
    return list(paginated_get(url, session=get_github_session()))


def get_repo_labels(repo: str) -> Dict[str, Dict[str, Any]]:
    """Get a dict mapping label names to full label info."""
    url = f"/repos/{repo}/labels"
    repo_labels = {lbl["name"]: lbl for lbl in paginated_get(url, session=get_github_session())}
    return repo_labels


def create_repo_label(repo: str, name: str, color: str, description: str) -> None:
    resp = get_github_session().post(
        f"/repos/{repo}/labels",
        json={"name": name, "color": color, "description": description},
    )
    log_check_response(resp)


def update_repo_label(repo: str, name: str, color: str, description: str) -> None:
    resp = get_github_session().patch(
        f"/repos/{repo}/labels/{quote(name, safe='')}",
        json={"color": color, "description": description},
    )
    log_check_response(resp)


def get_pr_label_names(prid: PrId) -> List[str]:
    """Get the names of the labels on a pull request, in GitHub's order."""
    url = f"/repos/{prid.full_name}/issues/{prid.number}/labels"
    return [lbl["name"] for lbl in paginated_get(url, session=get_github_session())]


def add_labels_to_pull_request(prid: PrId, labels: Iterable[str]) -> None:
    """
    Add labels to a pull request, in one request.

    GitHub creates labels that don't exist in the repo yet.
    """
    labels = list(labels)
    logger.info(f"Adding labels to PR {prid}: {labels}")
    resp = get_github_session().post(
        f"/repos/{prid.full_name}/issues/{prid.number}/labels",
        json={"labels": labels},
    )
    log_check_response(resp)


def remove_label_from_pull_request(prid: PrId, label: str) -> None:
    logger.info(f"Removing label from PR {prid}: {label}")
    resp = get_github_session().delete(
        f"/repos/{prid.full_name}/issues/{prid.number}/labels/{quote(label, safe='')}",
    )
    log_check_response(resp)


def get_pr_comments(prid: PrId) -> List[PrCommentDict]:
    """Get all the comments on a pull request, oldest first."""
    url = f"/repos/{prid.full_name}/issues/{prid.number}/comments"
    return list(paginated_get(url, session=get_github_session()))


def add_comment_to_pull_request(prid: PrId, comment_body: str) -> PrCommentDict:
    """
    Add a comment to a pull request.  Returns the new comment.
    """
    url = f"/repos/{prid.full_name}/issues/{prid.number}/comments"
    logger.info(f"Commenting on PR {prid}: {text_summary(comment_body, 90)!r}")
    resp = get_github_session().post(url, json={"body": comment_body})
    log_check_response(resp)
    return resp.json()


def edit_comment_on_pull_request(prid: PrId, comment_id: int, comment_body: str) -> None:
    url = f"/repos/{prid.full_name}/issues/comments/{comment_id}"
    logger.info(f"Updating comment on PR {prid}: {text_summary(comment_body, 90)!r}")
    resp = get_github_session().patch(url, json={"body": comment_body})
    log_check_response(resp)


def delete_comment_on_pull_request(prid: PrId, comment_id: int) -> None:
    url = f"/repos/{prid.full_name}/issues/comments/{comment_id}"
    logger.info(f"Deleting comment {comment_id} on PR {prid}")
    resp = get_github_session().delete(url)
    log_check_response(resp)
