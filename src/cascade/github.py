"""Minimal client for the GitHub REST endpoints used to sync branches."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional

import httpx

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"


class GithubError(Exception):
    """Raised when GitHub answers a request with an error status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class PullRequest:
    number: int
    url: str
    head_ref: str
    base_ref: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PullRequest:
        return cls(
            number=data["number"],
            url=data["url"],
            head_ref=data["head"]["ref"],
            base_ref=data["base"]["ref"],
        )


class GithubClient:
    """Authenticated access to a single repository.

    One instance is created per run and closed when the run ends::

        with GithubClient(token, "owner", "repo") as client:
            client.merge(base="develop", head="release/1.0.0")
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.api_url = (
            api_url or os.environ.get("GITHUB_API_URL") or DEFAULT_API_URL
        ).rstrip("/")
        self._http_client = http_client or httpx.Client(timeout=30.0)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    def close(self):
        """Close HTTP client."""
        self._http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _repo_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/{path}"

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send a request to the repository API.

        Raises:
            GithubError: If the response status is not 2xx
            httpx.RequestError: If network error occurs
        """
        response = self._http_client.request(
            method,
            self._repo_url(path),
            params=params,
            json=json,
            headers=self._headers,
        )
        if response.is_error:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise GithubError(response.status_code, message)
        return response

    def merge(self, base: str, head: str) -> Optional[str]:
        """
        Merge `head` into `base` on the server.

        Returns:
            The sha of the merge commit, or None if `base` already contains `head`.

        Raises:
            GithubError: If the merge is rejected, e.g. on conflicts (409) or a
                missing branch (404)
        """
        response = self._request("POST", "merges", json={"base": base, "head": head})
        if response.status_code == 204:
            return None
        return response.json()["sha"]

    def list_pull_requests(
        self,
        state: str = "open",
        head: Optional[str] = None,
        base: Optional[str] = None,
    ) -> list[PullRequest]:
        """
        List pull requests of the repository.

        Args:
            head: branch name to filter by. It is qualified with the
                repository owner, as GitHub requires.
            base: base branch name to filter by
        """
        params: dict[str, Any] = {"state": state, "per_page": 100}
        if head:
            params["head"] = f"{self.owner}:{head}"
        if base:
            params["base"] = base
        response = self._request("GET", "pulls", params=params)
        return [PullRequest.from_json(item) for item in response.json()]

    def compare_commits(self, base: str, head: str) -> list[dict[str, Any]]:
        """
        Return the files changed between `base` and `head`.

        Only the first page is requested, which is enough to tell whether
        there is any difference at all.
        """
        response = self._request(
            "GET", f"compare/{base}...{head}", params={"page": 1, "per_page": 1}
        )
        return response.json().get("files") or []

    def create_pull_request(
        self, head: str, base: str, title: str, body: str, draft: bool = False
    ) -> PullRequest:
        response = self._request(
            "POST",
            "pulls",
            json={
                "head": head,
                "base": base,
                "title": title,
                "body": body,
                "draft": draft,
            },
        )
        return PullRequest.from_json(response.json())
