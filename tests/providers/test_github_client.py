import json
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import requests

from pr_diff_context.providers.github_client import PER_PAGE, GitHubClient
from pr_diff_context.providers.pull_request import ProviderError, parse_pr_url


class DummyResponse(SimpleNamespace):
    def json(self):
        return json.loads(self.text)


def _response(status_code, data):
    text = data if isinstance(data, str) else json.dumps(data)
    return DummyResponse(status_code=status_code, text=text)


PR_PAYLOAD = {
    "title": "Add widgets",
    "user": {"login": "alice"},
    "html_url": "https://github.com/octo/widgets/pull/3",
    "base": {"ref": "main", "repo": {"clone_url": "https://github.com/octo/widgets.git"}},
    "head": {"ref": "widgets", "repo": {"clone_url": "https://github.com/octo/widgets.git"}},
}


class TestGitHubClient(unittest.TestCase):
    def setUp(self) -> None:
        self.ref = parse_pr_url("https://github.com/octo/widgets/pull/3")

    def test_get_pull_request(self) -> None:
        calls = []

        def fake_get(url, *_args, **kwargs):
            calls.append((url, kwargs))
            return _response(200, PR_PAYLOAD)

        with patch("requests.get", fake_get):
            info = GitHubClient(token="secret", request_timeout=5).get_pull_request(self.ref)

        self.assertEqual(info.head_ref, "widgets")
        self.assertEqual(info.base_ref, "main")
        url, kwargs = calls[0]
        self.assertEqual(url, "https://api.github.com/repos/octo/widgets/pulls/3")
        self.assertEqual(kwargs["headers"]["Authorization"], "token secret")
        self.assertEqual(kwargs["timeout"], 5)

    def test_no_auth_header_without_token(self) -> None:
        captured = {}

        def fake_get(url, *_args, **kwargs):
            captured.update(kwargs)
            return _response(200, PR_PAYLOAD)

        with patch("requests.get", fake_get):
            GitHubClient().get_pull_request(self.ref)
        self.assertNotIn("Authorization", captured["headers"])

    def test_custom_api_url(self) -> None:
        urls = []

        def fake_get(url, *_args, **kwargs):
            urls.append(url)
            return _response(200, PR_PAYLOAD)

        with patch("requests.get", fake_get):
            GitHubClient(api_url="https://ghe.example.com/api/v3/").get_pull_request(self.ref)
        self.assertEqual(urls[0], "https://ghe.example.com/api/v3/repos/octo/widgets/pulls/3")

    def test_api_error_message(self) -> None:
        def fake_get(url, *_args, **kwargs):
            return _response(404, {"message": "Not Found"})

        with patch("requests.get", fake_get):
            with self.assertRaises(ProviderError) as ctx:
                GitHubClient().get_pull_request(self.ref)
        self.assertIn("Not Found", str(ctx.exception))
        self.assertEqual(ctx.exception.status_code, 404)

    def test_connection_error(self) -> None:
        def fake_get(url, *_args, **kwargs):
            raise requests.ConnectionError("boom")

        with patch("requests.get", fake_get):
            with self.assertRaises(ProviderError):
                GitHubClient().get_pull_request(self.ref)

    def test_invalid_json(self) -> None:
        def fake_get(url, *_args, **kwargs):
            return _response(200, "not json")

        with patch("requests.get", fake_get):
            with self.assertRaises(ProviderError):
                GitHubClient().get_pull_request(self.ref)

    def test_get_comments_merges_and_orders(self) -> None:
        issue_comments = [
            {"user": {"login": "carol"}, "created_at": "2024-01-03T00:00:00Z", "body": "Ship it"},
        ]
        review_comments = [
            {
                "user": {"login": "dave"},
                "created_at": "2024-01-02T00:00:00Z",
                "body": "Typo",
                "path": "src/a.py",
                "line": None,
                "original_line": 12,
            },
        ]

        def fake_get(url, *_args, **kwargs):
            if url.endswith("/issues/3/comments"):
                return _response(200, issue_comments)
            if url.endswith("/pulls/3/comments"):
                return _response(200, review_comments)
            raise AssertionError(f"Unexpected URL: {url}")

        with patch("requests.get", fake_get):
            comments = GitHubClient().get_comments(self.ref)

        self.assertEqual([c.author for c in comments], ["dave", "carol"])
        self.assertEqual(comments[0].path, "src/a.py")
        self.assertEqual(comments[0].line, 12)
        self.assertIsNone(comments[1].path)

    def test_get_comments_paginates(self) -> None:
        pages = []
        full_page = [{"user": {"login": "u"}, "created_at": "t", "body": "b"}] * PER_PAGE

        def fake_get(url, *_args, **kwargs):
            if url.endswith("/issues/3/comments"):
                pages.append(kwargs["params"]["page"])
                return _response(200, full_page if kwargs["params"]["page"] == 1 else [])
            return _response(200, [])

        with patch("requests.get", fake_get):
            comments = GitHubClient().get_comments(self.ref)
        self.assertEqual(pages, [1, 2])
        self.assertEqual(len(comments), PER_PAGE)


if __name__ == "__main__":
    unittest.main()
