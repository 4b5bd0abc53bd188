"""
Generic utilities.
"""

import os
from time import sleep as retry_sleep   # so that we can patch it for tests.
from typing import Dict

import requests
import sentry_sdk
from urlobject import URLObject

from pr_actions import logger, settings
from pr_actions.auth import get_github_session


class RequestFailed(Exception):
    pass


class GraphQLError(Exception):
    """A GraphQL request came back with errors."""


def log_check_response(response, raise_for_status=True):
    """
    Logs HTTP request and response at debug level and checks if it succeeded.

    Arguments:
        response (requests.Response)
        raise_for_status (bool): if True, call raise_for_status on the response
            also.
    """
    msg = "Request: {0.method} {0.url}: {0.body!r}".format(response.request)
    logger.debug(msg)
    msg = "Response: {0.status_code} {0.reason!r} for {0.url}: {0.content!r}".format(response)
    logger.debug(msg)
    if raise_for_status:
        try:
            response.raise_for_status()
        except Exception as exc:
            req = response.request
            raise RequestFailed(f"HTTP request failed: {req.method} {req.url}. Response body: {response.content}") from exc


def text_summary(text, length=40):
    """
    Make a summary of `text`, at most `length` chars long.

    The middle will be elided if needed.
    """
    if len(text) <= length:
        return text
    else:
        start = (length - 3) // 2
        end = length - 3 - start
        return text[:start] + "..." + text[-end:]


def retry_get(session, url, **kwargs):
    """
    Get a URL, but retry if it returns a 404.

    GitHub has been known to send us a pull request event, and then return a
    404 when we ask for the comments on the pull request.  This will retry
    with a pause to get the real answer.

    """
    tries = 10
    while True:
        resp = session.get(url, **kwargs)
        if resp.status_code == 404:
            tries -= 1
            if tries == 0:
                break
            retry_sleep(.5)
            continue
        else:
            break
    return resp


def paginated_get(url, session=None, limit=None, per_page=100, **kwargs):
    """
    Retrieve all objects from a paginated API.

    Assumes that the pagination is specified in the "link" header, like
    Github's v3 API.

    The `limit` describes how many results you'd like returned.  You might get
    more than this, but you won't make more requests to the server once this
    limit has been exceeded.

    """
    url = URLObject(url).set_query_param('per_page', str(per_page))
    limit = limit or 999999999
    session = session or requests.Session()
    returned = 0
    while url:
        resp = retry_get(session, url, **kwargs)
        log_check_response(resp)
        for item in resp.json():
            yield item
            returned += 1
        url = None
        if resp.links and returned < limit:
            url = resp.links.get("next", {}).get("url", "")


def graphql_query(query: str, variables: Dict = {}) -> Dict:    # pylint: disable=dangerous-default-value
    """
    Make a GraphQL query against GitHub.

    Raises GraphQLError if GitHub reports errors.  The exception message
    includes GitHub's own error messages, so callers can look for them.
    """
    body = {
        "query": query,
        "variables": variables,
    }
    response = get_github_session().post(settings.GITHUB_GRAPHQL_URL, json=body)
    log_check_response(response)
    returned = response.json()
    if "errors" in returned and returned["errors"]:
        messages = "; ".join(
            err.get("message", repr(err)) if isinstance(err, dict) else str(err)
            for err in returned["errors"]
        )
        raise GraphQLError(f"GraphQL error: {messages}")
    return returned["data"]


def sentry_extra_context(data_dict):
    """Apply the keys and values from data_dict to the Sentry extra context."""
    for key, value in data_dict.items():
        sentry_sdk.set_extra(key, value)


def sleep_millis(millis: int) -> None:
    """Pause for a configured number of milliseconds, if any."""
    if millis > 0:
        retry_sleep(millis / 1000)


def set_action_output(name: str, value) -> None:
    """
    Set a GitHub Actions step output.

    Outputs are appended to the file named by $GITHUB_OUTPUT.  Outside of
    Actions, they are just printed.
    """
    if isinstance(value, bool):
        value = "true" if value else "false"
    line = f"{name}={value}"
    output_file = os.environ.get("GITHUB_OUTPUT")
    if output_file:
        with open(output_file, "a", encoding="utf-8") as f:
            print(line, file=f)
    else:
        print(line)
    logger.info(f"Output: {line}")
