"""
Provider selection and commentary retrieval.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Union

from pr_diff_context.report.report_model import CommentaryResult

from .azure_devops_client import AzureDevOpsClient
from .github_client import GitHubClient
from .pull_request import AZURE, ProviderError, PullRequestRef


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


ProviderClient = Union[GitHubClient, AzureDevOpsClient]


def client_for(ref: PullRequestRef, config: Dict[str, Any]) -> ProviderClient:
    """Return the API client for ``ref``'s provider, configured from ``config``."""
    timeout = float(config.get("request_timeout", 30))
    if ref.provider == AZURE:
        return AzureDevOpsClient(
            token=config.get("azure_devops_token"),
            api_version=config.get("azure_api_version", "7.0"),
            request_timeout=timeout,
        )
    return GitHubClient(
        token=config.get("github_token"),
        api_url=config.get("github_api_url", "https://api.github.com"),
        request_timeout=timeout,
    )


def fetch_commentary(client: ProviderClient, ref: PullRequestRef) -> CommentaryResult:
    """Fetch PR comments, turning provider failures into a failure value."""
    try:
        comments = client.get_comments(ref)
    except ProviderError as exc:
        logger.warning("Could not fetch PR comments: %s", exc)
        return CommentaryResult.failure(str(exc))
    logger.debug("Fetched %d comment(s)", len(comments))
    return CommentaryResult.success(comments)
