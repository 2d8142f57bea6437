"""
Client for the Azure DevOps Git REST API.

Mirrors :class:`~pr_diff_context.providers.github_client.GitHubClient`
for pull requests hosted on Azure DevOps. The personal access token is
sent as HTTP basic auth with an empty user name.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from pr_diff_context.report.report_model import Comment

from .pull_request import ProviderError, PullRequestInfo, PullRequestRef


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


API_ROOT = "https://dev.azure.com"


@dataclass
class AzureDevOpsClient:
    """Read-only Azure DevOps API client.

    Parameters
    ----------
    token : str, optional
        Personal access token.
    api_version : str, optional
        REST API version. Defaults to ``"7.0"``.
    request_timeout : float, optional
        Timeout in seconds for each request. Defaults to 30 seconds.
    """

    token: Optional[str] = None
    api_version: str = "7.0"
    request_timeout: float = 30.0

    def _pr_path(self, ref: PullRequestRef) -> str:
        return (
            f"{API_ROOT}/{ref.owner}/{ref.project}/_apis/git/repositories/"
            f"{ref.repo}/pullRequests/{ref.number}"
        )

    def _get(self, url: str) -> Dict[str, Any]:
        logger.debug("GET %s", url)
        auth = ("", self.token) if self.token else None
        try:
            response = requests.get(
                url,
                params={"api-version": self.api_version},
                auth=auth,
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to Azure DevOps: %s", exc)
            raise ProviderError(f"Failed to connect to Azure DevOps: {exc}") from exc
        if response.status_code != 200:
            logger.error("Azure DevOps returned status %s for %s", response.status_code, url)
            raise ProviderError(
                f"Error from Azure DevOps API ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except (ValueError, json.JSONDecodeError) as exc:
            raise ProviderError(f"Failed to parse Azure DevOps response from {url}") from exc
        if not isinstance(data, dict):
            raise ProviderError("Unexpected response structure from Azure DevOps")
        return data

    def get_pull_request(self, ref: PullRequestRef) -> PullRequestInfo:
        """Fetch pull request metadata.

        Raises
        ------
        ProviderError
            If the request fails or the PR does not exist.
        """
        payload = self._get(self._pr_path(ref))
        return PullRequestInfo.from_azure_payload(ref, payload)

    def get_comments(self, ref: PullRequestRef) -> List[Comment]:
        """Fetch human comments from all non-deleted threads."""
        payload = self._get(f"{self._pr_path(ref)}/threads")
        comments: List[Comment] = []
        for thread in payload.get("value", []):
            if thread.get("isDeleted"):
                continue
            context = thread.get("threadContext") or {}
            path = context.get("filePath")
            start = context.get("rightFileStart") or context.get("leftFileStart") or {}
            for item in thread.get("comments", []):
                if item.get("isDeleted") or item.get("commentType") == "system":
                    continue
                comments.append(
                    Comment(
                        author=(item.get("author") or {}).get("displayName", ""),
                        created_at=item.get("publishedDate", ""),
                        body=item.get("content") or "",
                        path=path.lstrip("/") if path else None,
                        line=start.get("line"),
                    )
                )
        comments.sort(key=lambda comment: comment.created_at)
        return comments
