# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub API client for cpp_warning_notifier.

Covers exactly the calls the notifier makes:

  REST GET   /repos/{owner}/{repo}/actions/runs/{run_id}/jobs      (paginated)
  REST GET   /repos/{owner}/{repo}/actions/jobs/{job_id}/logs      (302 -> signed URL)
  GET        <signed log URL>                                      (plain text)
  REST GET   /repos/{owner}/{repo}/issues/{number}/comments        (paginated)
  REST POST  /repos/{owner}/{repo}/issues/{number}/comments
  REST GET   /repos/{owner}/{repo}/contents/{path}
  GraphQL    minimizeComment(input: {subjectId, classifier})
  REST GET   /user, /app                                           (comment author login)

Per-client call statistics are kept in `self.stats` and logged by the CLI at the end of a run.
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import yaml

from .common_types import CommentRecord, JobInfo
from .exceptions import (
    GitHubAPIError,
    GitHubAuthError,
    GitHubForbiddenError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    error_for_status,
)

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "cpp-warning-notifier"
DEFAULT_PER_PAGE = 100
DEFAULT_MAX_PAGES = 10

MINIMIZE_COMMENT_MUTATION = """
mutation($id: ID!, $classifier: ReportedContentClassifiers!) {
  minimizeComment(input: { subjectId: $id, classifier: $classifier }) {
    clientMutationId
  }
}
""".strip()


@dataclass
class GitHubAPIStats:
    """Per-client REST/GraphQL call counters."""

    calls_total: int = 0
    calls_by_label: Dict[str, int] = field(default_factory=dict)
    errors_by_status: Dict[int, int] = field(default_factory=dict)
    time_total_s: float = 0.0

    def record(self, label: str, status_code: int, dt: float) -> None:
        self.calls_total += 1
        self.calls_by_label[label] = self.calls_by_label.get(label, 0) + 1
        self.time_total_s += max(0.0, float(dt))
        if status_code >= 400:
            self.errors_by_status[status_code] = self.errors_by_status.get(status_code, 0) + 1

    def summary(self) -> str:
        labels = ", ".join(f"{k}={v}" for k, v in sorted(self.calls_by_label.items()))
        errors = ", ".join(f"{k}={v}" for k, v in sorted(self.errors_by_status.items())) or "none"
        return f"{self.calls_total} call(s) in {self.time_total_s:.1f}s [{labels}] errors: {errors}"


class GitHubAPIClient:
    """GitHub API client with token detection and uniform error mapping.

    Example:
        client = GitHubAPIClient(token=os.environ["GITHUB_TOKEN"])
        jobs = client.list_jobs_for_workflow_run("owner", "repo", 123456789)
    """

    @staticmethod
    def get_github_token_from_file() -> Optional[str]:
        """Get a token from a local config file.

        First match wins:
        - ~/.config/github-token   (single line token)
        - ~/.config/gh/hosts.yml   (GitHub CLI login; oauth_token)
        """
        try:
            token_file = Path.home() / ".config" / "github-token"
            if token_file.exists():
                tok = (token_file.read_text() or "").strip()
                if tok:
                    return tok
        except OSError:
            pass
        return GitHubAPIClient.get_github_token_from_cli()

    @staticmethod
    def get_github_token_from_cli() -> Optional[str]:
        """Read the oauth_token from the GitHub CLI config (~/.config/gh/hosts.yml)."""
        try:
            gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
            if gh_config_path.exists():
                with open(gh_config_path, "r") as f:
                    config = yaml.safe_load(f)
                if config and "github.com" in config:
                    github_config = config["github.com"] or {}
                    if "oauth_token" in github_config:
                        return github_config["oauth_token"]
                    for _user, user_config in (github_config.get("users") or {}).items():
                        if isinstance(user_config, dict) and "oauth_token" in user_config:
                            return user_config["oauth_token"]
        except (OSError, yaml.YAMLError):
            pass
        return None

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        base_url: str = GITHUB_API_URL,
        timeout: int = 30,
        require_auth: bool = False,
    ):
        self.token = token or self.get_github_token_from_file()
        if require_auth and not self.token:
            raise RuntimeError(
                "GitHub API authentication is required but no token was found. "
                "Set GITHUB_TOKEN, or login with gh so ~/.config/gh/hosts.yml exists."
            )
        self.base_url = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": USER_AGENT,
        }
        if self.token:
            self.headers["Authorization"] = f"token {self.token}"
        self.stats = GitHubAPIStats()
        self._login: Optional[str] = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}{endpoint}" if endpoint.startswith("/") else f"{self.base_url}/{endpoint}"

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        label: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        allow_redirects: bool = True,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        url = self._url(endpoint)
        logger.debug("GH %s [%s] %s", method, label, url)
        t0 = time.monotonic()
        resp = requests.request(
            method,
            url,
            headers=self.headers if headers is None else headers,
            params=params,
            json=json_body,
            timeout=self.timeout,
            allow_redirects=allow_redirects,
        )
        self.stats.record(label, int(resp.status_code or 0), time.monotonic() - t0)
        logger.debug(
            "GH RESP [%s] status=%s remaining=%s", label, resp.status_code, resp.headers.get("X-RateLimit-Remaining")
        )
        return resp

    @staticmethod
    def _raise_for_status(resp: requests.Response, endpoint: str, *, expected: tuple = (200,)) -> None:
        code = int(resp.status_code or 0)
        if code in expected:
            return
        body = ""
        try:
            body = (resp.text or "")[:300]
        except (ValueError, TypeError):
            body = ""
        if code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0":
            message = f"GitHub API rate limit exceeded for {endpoint}"
        else:
            message = f"GitHub API returned {code} for {endpoint}: {body}"
        raise error_for_status(status_code=code, endpoint=endpoint, message=message)

    def _get_paginated(self, endpoint: str, *, label: str, key: Optional[str] = None,
                       per_page: int = DEFAULT_PER_PAGE, max_pages: int = DEFAULT_MAX_PAGES) -> List[Dict[str, Any]]:
        """Collect list items across pages until a short page (or `max_pages`)."""
        items: List[Dict[str, Any]] = []
        for page in range(1, max_pages + 1):
            resp = self._request("GET", endpoint, label=label, params={"per_page": per_page, "page": page})
            self._raise_for_status(resp, endpoint)
            data = resp.json()
            chunk = data.get(key, []) if key else data
            if not isinstance(chunk, list):
                raise GitHubAPIError(
                    status_code=int(resp.status_code or 0),
                    endpoint=endpoint,
                    message=f"unexpected response shape for {endpoint}",
                )
            items.extend(chunk)
            if len(chunk) < per_page:
                break
        return items

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def get_authenticated_login(self, *, installation_login: Optional[str] = None) -> str:
        """Login that comments created with this token are authored by.

        - user tokens (PAT, gh CLI): `GET /user` -> login
        - installation tokens get 401/403 there; `installation_login` is returned when given
          (Actions' GITHUB_TOKEN comments as "github-actions[bot]")
        - otherwise app tokens: `GET /app` -> "<slug>[bot]"
        The result is cached per client.
        """
        if self._login is not None:
            return self._login
        try:
            resp = self._request("GET", "/user", label="user")
            self._raise_for_status(resp, "/user")
            self._login = str(resp.json()["login"])
        except (GitHubAuthError, GitHubForbiddenError, GitHubNotFoundError) as e:
            if installation_login:
                logger.debug("GET /user refused (%s), using %s", e.status_code, installation_login)
                self._login = installation_login
            else:
                resp = self._request("GET", "/app", label="app")
                self._raise_for_status(resp, "/app")
                self._login = f"{resp.json()['slug']}[bot]"
        logger.info("authenticated as %s", self._login)
        return self._login

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def list_jobs_for_workflow_run(self, owner: str, repo: str, run_id: int) -> List[JobInfo]:
        """Jobs of one workflow run, in listing order.

        Example response item:
            {"id": 2969..., "name": "ubuntu gcc C++20", "status": "completed",
             "steps": [{"name": "Build", "status": "completed", "conclusion": "success", "number": 3}]}
        """
        endpoint = f"/repos/{owner}/{repo}/actions/runs/{run_id}/jobs"
        raw = self._get_paginated(endpoint, label="actions_jobs", key="jobs")
        return [JobInfo.from_api(j) for j in raw if isinstance(j, dict) and "id" in j]

    def get_job_log_url(self, owner: str, repo: str, job_id: int) -> str:
        """Short-lived signed URL of a job's plain-text log (the Location of a 302)."""
        endpoint = f"/repos/{owner}/{repo}/actions/jobs/{job_id}/logs"
        resp = self._request("GET", endpoint, label="actions_job_logs", allow_redirects=False)
        self._raise_for_status(resp, endpoint, expected=(301, 302, 303, 307, 308))
        location = resp.headers.get("Location")
        if not location:
            raise GitHubAPIError(status_code=int(resp.status_code), endpoint=endpoint, message="redirect without Location")
        return location

    def download_text(self, url: str) -> str:
        """GET a signed log URL. The URL embeds its own credentials, so no Authorization header."""
        resp = self._request("GET", url, label="raw_log_text", headers={"User-Agent": USER_AGENT})
        self._raise_for_status(resp, "raw log")
        # Logs are UTF-8 but served without a charset, which requests would read as latin-1.
        return resp.content.decode("utf-8", errors="replace")

    def get_job_log_text(self, owner: str, repo: str, job_id: int) -> str:
        return self.download_text(self.get_job_log_url(owner, repo, job_id))

    # ------------------------------------------------------------------
    # Issue comments
    # ------------------------------------------------------------------

    def list_issue_comments(self, owner: str, repo: str, number: int) -> List[CommentRecord]:
        endpoint = f"/repos/{owner}/{repo}/issues/{number}/comments"
        raw = self._get_paginated(endpoint, label="issue_comments")
        return [CommentRecord.from_api(c) for c in raw if isinstance(c, dict)]

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> CommentRecord:
        endpoint = f"/repos/{owner}/{repo}/issues/{number}/comments"
        resp = self._request("POST", endpoint, label="issue_comment_create", json_body={"body": body})
        self._raise_for_status(resp, endpoint, expected=(201,))
        return CommentRecord.from_api(resp.json())

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        endpoint = "/graphql"
        resp = self._request("POST", endpoint, label="graphql", json_body={"query": query, "variables": variables})
        self._raise_for_status(resp, endpoint)
        data = resp.json()
        errors = data.get("errors") if isinstance(data, dict) else None
        if errors:
            messages = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            raise GitHubGraphQLError(status_code=int(resp.status_code), endpoint=endpoint, message=messages)
        return data.get("data") or {}

    def minimize_comment(self, node_id: str, classifier: str = "OUTDATED") -> None:
        self.graphql(MINIMIZE_COMMENT_MUTATION, {"id": node_id, "classifier": classifier})

    # ------------------------------------------------------------------
    # Repository contents
    # ------------------------------------------------------------------

    def get_repo_file_text(self, owner: str, repo: str, path: str, *, ref: Optional[str] = None) -> Optional[str]:
        """Decoded text of a file in the repository, or None when it does not exist."""
        endpoint = f"/repos/{owner}/{repo}/contents/{path.lstrip('/')}"
        resp = self._request("GET", endpoint, label="repo_contents", params={"ref": ref} if ref else None)
        try:
            self._raise_for_status(resp, endpoint)
        except GitHubNotFoundError:
            return None
        data = resp.json()
        if not isinstance(data, dict) or "content" not in data:
            # A directory listing (list) or a submodule/symlink entry.
            return None
        return base64.b64decode(data["content"]).decode("utf-8", errors="replace")
