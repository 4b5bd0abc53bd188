"""Automatically run by pytest to set up test infrastructure."""

import pytest
import requests_mock

from . import settings as test_settings
from .fake_github import FakeGitHub
from .fake_slack import FakeSlack


@pytest.fixture
def requests_mocker():
    """Make requests_mock available as a fixture."""
    mocker = requests_mock.Mocker(real_http=False, case_sensitive=True)
    mocker.start()
    try:
        yield mocker
    finally:
        mocker.stop()


@pytest.fixture(autouse=True)
def settings_for_tests(mocker):
    for name, value in vars(test_settings).items():
        if name.isupper():
            mocker.patch(f"pr_actions.settings.{name}", value)


@pytest.fixture(autouse=True)
def no_sleeping(mocker):
    """
    Nothing should really sleep during tests.

    Returns the mock of time.sleep, used by backoff.  Our own pauses go through
    pr_actions.utils.retry_sleep.
    """
    mocker.patch("pr_actions.utils.retry_sleep")
    return mocker.patch("time.sleep")


@pytest.fixture
def fake_github(requests_mocker):
    the_fake_github = FakeGitHub(login="pr-actions-bot")
    the_fake_github.install_mocks(requests_mocker)
    return the_fake_github


@pytest.fixture
def fake_slack(mocker):
    """
    A FakeSlack, used by any SlackApi made during the test.
    """
    the_fake_slack = FakeSlack()
    mocker.patch("pr_actions.slack.WebClient", return_value=the_fake_slack)
    return the_fake_slack
