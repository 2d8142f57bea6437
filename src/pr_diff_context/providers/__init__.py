"""
Pull request metadata providers.

Clients for the GitHub and Azure DevOps REST APIs, plus URL parsing and
the typed PR metadata they return.
"""

from .azure_devops_client import AzureDevOpsClient  # noqa: F401
from .factory import client_for, fetch_commentary  # noqa: F401
from .github_client import GitHubClient  # noqa: F401
from .pull_request import (  # noqa: F401
    InvalidPullRequestUrl,
    ProviderError,
    PullRequestInfo,
    PullRequestRef,
    parse_pr_url,
)
