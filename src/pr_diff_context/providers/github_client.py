"""
Client for the GitHub REST API.

Only the read-only calls needed to build a review context are
implemented: pull request metadata, conversation comments and review
comments. Errors (connection failures, non-200 statuses, invalid JSON)
are raised as :class:`ProviderError`, carrying GitHub's ``message``
field when the API returns one.
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


PER_PAGE = 100
MAX_PAGES = 10


@dataclass
class GitHubClient:
    """Read-only GitHub API client.

    Parameters
    ----------
    token : str, optional
        Personal access token sent as ``Authorization: token <t>``.
    api_url : str, optional
        API base URL. Defaults to ``https://api.github.com``.
    request_timeout : float, optional
        Timeout in seconds for each request. Defaults to 30 seconds.
    """

    token: Optional[str] = None
    api_url: str = "https://api.github.com"
    request_timeout: float = 30.0

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url.rstrip('/')}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = requests.get(
                url,
                headers=self._headers(),
                params=params,
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to GitHub: %s", exc)
            raise ProviderError(f"Failed to connect to GitHub: {exc}") from exc
        try:
            data = response.json()
        except (ValueError, json.JSONDecodeError):
            data = None
        if response.status_code != 200:
            message = data.get("message") if isinstance(data, dict) else None
            logger.error("GitHub returned status %s for %s: %s", response.status_code, url, message or response.text)
            raise ProviderError(
                f"Error from GitHub API ({response.status_code}): {message or response.text}",
                status_code=response.status_code,
            )
        if data is None:
            raise ProviderError(f"Failed to parse GitHub response from {url}")
        return data

    def _get_all(self, path: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        for page in range(1, MAX_PAGES + 1):
            batch = self._get(path, params={"per_page": PER_PAGE, "page": page})
            if not isinstance(batch, list):
                raise ProviderError(f"Unexpected response structure from GitHub for {path}")
            items.extend(batch)
            if len(batch) < PER_PAGE:
                break
        return items

    def get_pull_request(self, ref: PullRequestRef) -> PullRequestInfo:
        """Fetch pull request metadata.

        Raises
        ------
        ProviderError
            If the request fails or the PR does not exist.
        """
        payload = self._get(f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}")
        if not isinstance(payload, dict):
            raise ProviderError("Unexpected response structure from GitHub")
        return PullRequestInfo.from_github_payload(ref, payload)

    def get_comments(self, ref: PullRequestRef) -> List[Comment]:
        """Fetch conversation and review comments ordered by creation time."""
        issue_comments = self._get_all(f"/repos/{ref.owner}/{ref.repo}/issues/{ref.number}/comments")
        review_comments = self._get_all(f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}/comments")
        comments = [
            Comment(
                author=(item.get("user") or {}).get("login", ""),
                created_at=item.get("created_at", ""),
                body=item.get("body") or "",
            )
            for item in issue_comments
        ]
        for item in review_comments:
            line = item.get("line")
            if line is None:
                line = item.get("original_line")
            comments.append(
                Comment(
                    author=(item.get("user") or {}).get("login", ""),
                    created_at=item.get("created_at", ""),
                    body=item.get("body") or "",
                    path=item.get("path"),
                    line=line,
                )
            )
        comments.sort(key=lambda comment: comment.created_at)
        return comments
