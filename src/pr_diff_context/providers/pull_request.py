"""
Pull request references and metadata.

A :class:`PullRequestRef` identifies a pull request on GitHub or Azure
DevOps and is parsed from its web URL. :class:`PullRequestInfo` is the
typed form of the metadata returned by either provider's REST API.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


GITHUB = "github"
AZURE = "azure"

DEFAULT_BASE_REF = "main"
DEFAULT_HEAD_REF = "feature"

_GITHUB_URL_RE = re.compile(
    r"^https://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/pull/(?P<number>\d+)(?:[/?#].*)?$"
)
_AZURE_URL_RE = re.compile(
    r"^https://dev\.azure\.com/(?P<org>[^/]+)/(?P<project>[^/]+)/_git/(?P<repo>[^/]+)"
    r"/pullrequest/(?P<number>\d+)(?:[/?#].*)?$",
    re.IGNORECASE,
)
_VSTS_URL_RE = re.compile(
    r"^https://(?P<org>[^./]+)\.visualstudio\.com/(?P<project>[^/]+)/_git/(?P<repo>[^/]+)"
    r"/pullrequest/(?P<number>\d+)(?:[/?#].*)?$",
    re.IGNORECASE,
)

EXPECTED_FORMATS = (
    "https://github.com/owner/repo/pull/123 or "
    "https://dev.azure.com/org/project/_git/repo/pullrequest/123"
)


class InvalidPullRequestUrl(ValueError):
    """Raised when a URL does not point at a supported pull request."""

    pass


class ProviderError(Exception):
    """Raised when a provider API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PullRequestRef:
    """Identifies a pull request.

    ``owner`` is the GitHub owner or the Azure DevOps organization;
    ``project`` is only set for Azure DevOps.
    """

    provider: str
    owner: str
    repo: str
    number: int
    url: str
    project: Optional[str] = None

    @property
    def repository(self) -> str:
        if self.project:
            return f"{self.owner}/{self.project}/{self.repo}"
        return f"{self.owner}/{self.repo}"


def parse_pr_url(url: str) -> PullRequestRef:
    """Parse a GitHub or Azure DevOps pull request URL.

    Raises
    ------
    InvalidPullRequestUrl
        If the URL matches neither supported format.
    """
    url = url.strip()
    match = _GITHUB_URL_RE.match(url)
    if match:
        return PullRequestRef(
            provider=GITHUB,
            owner=match.group("owner"),
            repo=match.group("repo"),
            number=int(match.group("number")),
            url=url,
        )
    match = _AZURE_URL_RE.match(url) or _VSTS_URL_RE.match(url)
    if match:
        return PullRequestRef(
            provider=AZURE,
            owner=match.group("org"),
            project=match.group("project"),
            repo=match.group("repo"),
            number=int(match.group("number")),
            url=url,
        )
    raise InvalidPullRequestUrl(f"Invalid pull request URL: {url}. Expected format: {EXPECTED_FORMATS}")


def _strip_heads(ref: Optional[str]) -> Optional[str]:
    if ref and ref.startswith("refs/heads/"):
        return ref[len("refs/heads/"):]
    return ref


def _get(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


@dataclass(frozen=True)
class PullRequestInfo:
    """Typed pull request metadata.

    Attributes
    ----------
    number : int
        Pull request number or id.
    title : str
        Pull request title.
    author : str
        Login or display name of the author.
    base_ref, head_ref : str
        Target and source branch names, without ``refs/heads/``.
    clone_url : str
        Clone URL of the repository holding the head branch.
    base_clone_url : str
        Clone URL of the repository holding the base branch.
    url : str
        Web URL of the pull request.
    """

    number: int
    title: str
    author: str
    base_ref: str
    head_ref: str
    clone_url: str
    base_clone_url: str
    url: str

    @classmethod
    def _with_defaults(cls, ref: PullRequestRef, fields: Dict[str, Any], default_clone: str) -> "PullRequestInfo":
        if not fields["base_ref"]:
            logger.warning("PR payload has no base branch; using default: %s", DEFAULT_BASE_REF)
            fields["base_ref"] = DEFAULT_BASE_REF
        if not fields["head_ref"]:
            logger.warning("PR payload has no head branch; using default: %s", DEFAULT_HEAD_REF)
            fields["head_ref"] = DEFAULT_HEAD_REF
        if not fields["clone_url"]:
            logger.warning("PR payload has no clone URL; using default: %s", default_clone)
            fields["clone_url"] = default_clone
        if not fields["base_clone_url"]:
            fields["base_clone_url"] = fields["clone_url"]
        return cls(
            number=ref.number,
            title=fields["title"] or "",
            author=fields["author"] or "",
            base_ref=fields["base_ref"],
            head_ref=fields["head_ref"],
            clone_url=fields["clone_url"],
            base_clone_url=fields["base_clone_url"],
            url=fields["url"] or ref.url,
        )

    @classmethod
    def from_github_payload(cls, ref: PullRequestRef, payload: Dict[str, Any]) -> "PullRequestInfo":
        """Build from the ``GET /repos/{owner}/{repo}/pulls/{n}`` payload."""
        fields = {
            "title": _get(payload, "title"),
            "author": _get(payload, "user", "login"),
            "base_ref": _get(payload, "base", "ref"),
            "head_ref": _get(payload, "head", "ref"),
            "clone_url": _get(payload, "head", "repo", "clone_url"),
            "base_clone_url": _get(payload, "base", "repo", "clone_url"),
            "url": _get(payload, "html_url"),
        }
        return cls._with_defaults(ref, fields, f"https://github.com/{ref.owner}/{ref.repo}.git")

    @classmethod
    def from_azure_payload(cls, ref: PullRequestRef, payload: Dict[str, Any]) -> "PullRequestInfo":
        """Build from the Azure DevOps ``pullRequests/{id}`` payload."""
        base_clone = _get(payload, "repository", "remoteUrl")
        fields = {
            "title": _get(payload, "title"),
            "author": _get(payload, "createdBy", "displayName"),
            "base_ref": _strip_heads(_get(payload, "targetRefName")),
            "head_ref": _strip_heads(_get(payload, "sourceRefName")),
            "clone_url": _get(payload, "forkSource", "repository", "remoteUrl") or base_clone,
            "base_clone_url": base_clone,
            "url": None,
        }
        default_clone = f"https://dev.azure.com/{ref.owner}/{ref.project}/_git/{ref.repo}"
        return cls._with_defaults(ref, fields, default_clone)
