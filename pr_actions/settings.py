"""Settings for how the actions should behave."""

import os


def read_millis_setting(setting_name: str) -> int:
    """Read a delay in milliseconds from a setting, 0 if missing or bad."""
    value = os.environ.get(setting_name, "0")
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN", os.environ.get("GH_TOKEN", None))

# GitHub Actions sets these, and they differ on GitHub Enterprise Server.
GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")
GITHUB_GRAPHQL_URL = os.environ.get("GITHUB_GRAPHQL_URL", f"{GITHUB_API_URL}/graphql")

SLACK_BOT_TOKEN = os.environ.get("SLACK_BOT_TOKEN", None)
SLACK_CHANNEL_ID = os.environ.get("SLACK_CHANNEL_ID", None)

# Optional pauses for the Slack notifier.  All default to zero: we rely on
# API state rather than static waits.
WAIT_TIME = read_millis_setting("WAIT_TIME")
REACTION_DELAY_MS = read_millis_setting("REACTION_DELAY_MS")
VERIFICATION_DELAY_MS = read_millis_setting("VERIFICATION_DELAY_MS")
