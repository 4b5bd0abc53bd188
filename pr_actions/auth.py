"""
Create authenticated sessions for access to GitHub.
"""

import requests
from urlobject import URLObject

from pr_actions import settings


class BaseUrlSession(requests.Session):
    """
    A requests Session class that applies a base URL to the requested URL.

    Absolute paths like "/repos/..." are appended to the base URL, so that a
    GitHub Enterprise base like "https://ghe.example.com/api/v3" keeps its
    prefix.  Full URLs are used as-is.
    """
    def __init__(self, base_url):
        super().__init__()
        self.base_url = URLObject(base_url)

    def request(self, method, url, data=None, headers=None, **kwargs):
        if url.startswith("/"):
            url = self.base_url.rstrip("/") + url
        else:
            url = self.base_url.relative(url)
        return super().request(
            method=method,
            url=url,
            data=data,
            headers=headers,
            **kwargs
        )


def get_github_session():
    """
    Get the GitHub session to use.
    """
    session = BaseUrlSession(base_url=settings.GITHUB_API_URL)
    session.headers["Authorization"] = f"token {settings.GITHUB_TOKEN}"
    session.headers["Accept"] = "application/vnd.github+json"
    session.trust_env = False   # prevent reading the local .netrc
    return session
