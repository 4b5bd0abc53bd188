"""
A Slack Web API client that retries the way we want.

slack_sdk's own retry handlers are turned off: every call goes through
SlackApi.call, which retries with backoff.
"""

from typing import Dict, List, Optional

import backoff
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from slack_sdk.web import SlackResponse

from pr_actions import logger

# Retrying these won't help.
FATAL_ERRORS = {"missing_scope", "not_in_channel", "channel_not_found"}

# These are answers, not faults.  The caller decides what they mean.
ANSWER_ERRORS = {"no_reaction", "already_reacted", "invalid_blocks", "not_authed", "invalid_auth"}

RATE_LIMIT_ERRORS = {"ratelimited", "rate_limited"}
DEFAULT_RETRY_AFTER = 60

MAX_RETRIES = 3

# Methods that take a JSON body.  The rest are form-encoded.
JSON_BODY_METHODS = {"chat.postMessage", "chat.update"}
READ_METHODS = {"conversations.history"}


def slack_error_code(exc: BaseException) -> Optional[str]:
    """The Slack error code ("not_authed", etc) from an exception, if it has one."""
    if isinstance(exc, SlackApiError) and exc.response is not None:
        return exc.response.get("error")
    return None


def retry_after_seconds(exc: BaseException, default: int = DEFAULT_RETRY_AFTER) -> Optional[int]:
    """
    How long a rate-limited request says to wait, or None if it wasn't rate-limited.
    """
    if slack_error_code(exc) not in RATE_LIMIT_ERRORS:
        return None
    value = exc.response.get("retry_after")
    if value is None:
        headers = {k.lower(): v for k, v in (exc.response.headers or {}).items()}
        value = headers.get("retry-after")
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def slack_retry_wait(base=1, max_value=10, default_retry_after=DEFAULT_RETRY_AFTER):
    """
    A backoff wait generator: 1, 2, 4... seconds capped at `max_value`, but
    rate limits wait as long as Slack asks.

    backoff sends us the exception for each failed try.
    """
    exc = yield
    n = 0
    while True:
        wait = retry_after_seconds(exc, default_retry_after)
        if wait is None:
            wait = min(base * 2 ** n, max_value)
        n += 1
        exc = yield wait


def _give_up(exc: BaseException) -> bool:
    code = slack_error_code(exc)
    if code in FATAL_ERRORS:
        logger.error(f"Slack API error {code} can't be fixed by retrying. Check the Slack app's permissions and channel.")
        return True
    return code in ANSWER_ERRORS


def _log_backoff(details: Dict) -> None:
    exc = details["exception"]
    method = details["args"][1] if len(details["args"]) > 1 else details["kwargs"].get("method")
    logger.warning(
        f"Slack API {method} failed ({slack_error_code(exc) or exc}), "
        f"retry {details['tries']}/{MAX_RETRIES} in {details['wait']}s"
    )


class SlackApi:
    """
    The few Slack methods we need, on one channel.
    """

    def __init__(self, token: str, channel: str, client: Optional[WebClient] = None) -> None:
        self.channel = channel
        self.client = client or WebClient(token=token, retry_handlers=[])

    @backoff.on_exception(
        slack_retry_wait,
        (SlackApiError, OSError),
        max_tries=MAX_RETRIES + 1,
        jitter=None,
        giveup=_give_up,
        on_backoff=_log_backoff,
    )
    def call(self, method: str, **params) -> SlackResponse:
        """
        Call a Slack API method, retrying transient failures.

        Raises SlackApiError for errors that retrying didn't fix.
        """
        logger.debug(f"Calling Slack API: {method} {params!r}")
        if method in JSON_BODY_METHODS:
            kwargs = {"json": params}
        elif method in READ_METHODS:
            kwargs = {"http_verb": "GET", "params": params}
        else:
            kwargs = {"params": params}
        response = self.client.api_call(method, **kwargs)
        logger.debug(f"Slack API {method} succeeded")
        return response

    def post_message(self, text: str, blocks: List[Dict]) -> SlackResponse:
        response = self.call("chat.postMessage", channel=self.channel, text=text, blocks=blocks)
        logger.info(f"Message posted with timestamp: {response.get('ts')}")
        return response

    def update_message(self, ts: str, text: str, blocks: List[Dict]) -> SlackResponse:
        return self.call("chat.update", channel=self.channel, ts=ts, text=text, blocks=blocks)

    def get_message(self, ts: str) -> Optional[Dict]:
        """The message at `ts`, or None if Slack doesn't have it."""
        response = self.call("conversations.history", channel=self.channel, latest=ts, limit=1, inclusive=True)
        messages = response.get("messages") or []
        return messages[0] if messages else None

    def add_reaction(self, ts: str, name: str) -> None:
        self.call("reactions.add", channel=self.channel, timestamp=ts, name=name)

    def remove_reaction(self, ts: str, name: str) -> None:
        self.call("reactions.remove", channel=self.channel, timestamp=ts, name=name)
