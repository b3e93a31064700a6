"""
Pytest tests for server.py (webhook signature, event routing, workflow_run handling).

Run from the repository root:
    pytest cpp_warning_notifier/test_server.py -v
"""

import asyncio
import hashlib
import hmac
import json

import pytest
from aiohttp import test_utils

from cpp_warning_notifier.common_types import CommentRecord, JobInfo, JobStep
from cpp_warning_notifier.exceptions import ConfigError
from cpp_warning_notifier.github_api import GitHubAPIStats
from cpp_warning_notifier.regexes import LOG_MARKER
from cpp_warning_notifier.server import WEBHOOK_PATH, create_app, handle_workflow_run, verify_signature

SECRET = "s3cret"

REPO_CONFIG = json.dumps({
    "job_regex": r"^(?<os>\w+) C\+\+(?<std>\d+)$",
    "step_regex": "^Build$",
    "row_headers": ["os"],
    "column_header": "std",
})


class FakeClient:
    def __init__(self, config_text=REPO_CONFIG):
        self.config_text = config_text
        self.stats = GitHubAPIStats()
        self.created = []

    def get_repo_file_text(self, owner, repo, path, *, ref=None):
        return self.config_text

    def list_jobs_for_workflow_run(self, owner, repo, run_id):
        steps = (JobStep("Build", "completed", "success"),)
        return [JobInfo(1, "ubuntu C++20", steps)]

    def get_job_log_text(self, owner, repo, job_id):
        return f"{LOG_MARKER}\na.cpp:1:1: warning: w"

    def list_issue_comments(self, owner, repo, number):
        return []

    def create_issue_comment(self, owner, repo, number, body):
        self.created.append((number, body))
        return CommentRecord(node_id="N", created_at="2026-01-01T00:00:00Z", author_login="bot", body=body)

    def minimize_comment(self, node_id, classifier="OUTDATED"):
        raise AssertionError("nothing to minimize")

    def get_authenticated_login(self, *, installation_login=None):
        return "notifier-bot"


def _payload(pull_requests=({"number": 12},), action="completed"):
    return {
        "action": action,
        "repository": {"name": "proj", "owner": {"login": "octo"}},
        "workflow_run": {"id": 99, "pull_requests": list(pull_requests)},
    }


def _sign(body: bytes, secret: str = SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _post(app, body: bytes, headers):
    async def run():
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.post(WEBHOOK_PATH, data=body, headers=headers)
            return resp.status, await resp.json()

    return asyncio.run(run())


# ============================================================================
# Tests for verify_signature()
# ============================================================================

def test_verify_signature():
    body = b'{"zen": "Keep it logically awesome."}'
    assert verify_signature(SECRET, body, _sign(body))
    assert not verify_signature(SECRET, body, _sign(body, "other"))
    assert not verify_signature(SECRET, body, None)
    assert not verify_signature(SECRET, body, "sha1=abc")


# ============================================================================
# Tests for handle_workflow_run()
# ============================================================================

def test_handle_workflow_run_comments_each_pr():
    client = FakeClient()
    handled = handle_workflow_run(client, _payload(pull_requests=[{"number": 12}, {"number": 13}]))
    assert handled == [12, 13]
    assert [n for n, _ in client.created] == [12, 13]
    assert "/octo/proj/actions/runs/99/job/1#step:1:2" in client.created[0][1]


def test_handle_workflow_run_without_prs():
    client = FakeClient()
    assert handle_workflow_run(client, _payload(pull_requests=[])) == []
    assert client.created == []


def test_handle_workflow_run_without_repo_config():
    client = FakeClient(config_text=None)
    assert handle_workflow_run(client, _payload()) == []
    assert client.created == []


def test_handle_workflow_run_with_invalid_repo_config():
    client = FakeClient(config_text='{"job_regex": "(unclosed"}')
    assert handle_workflow_run(client, _payload()) == []


# ============================================================================
# Tests for the webhook endpoint
# ============================================================================

def test_webhook_rejects_bad_signature():
    app = create_app(webhook_secret=SECRET, client_factory=FakeClient)
    body = json.dumps(_payload()).encode("utf-8")
    status, data = _post(app, body, {"X-GitHub-Event": "workflow_run", "X-Hub-Signature-256": "sha256=00"})
    assert status == 401
    assert data == {"error": "invalid signature"}


def test_webhook_ping():
    app = create_app(webhook_secret=SECRET, client_factory=FakeClient)
    body = b'{"zen": "Design for failure."}'
    status, data = _post(app, body, {"X-GitHub-Event": "ping", "X-Hub-Signature-256": _sign(body)})
    assert status == 200
    assert data == {"ok": True}


def test_webhook_ignores_other_events():
    app = create_app(webhook_secret=SECRET, client_factory=FakeClient)
    body = json.dumps(_payload(action="requested")).encode("utf-8")
    status, data = _post(app, body, {"X-GitHub-Event": "workflow_run", "X-Hub-Signature-256": _sign(body)})
    assert status == 202
    assert data == {"ignored": "workflow_run.requested"}


def test_webhook_rejects_invalid_json():
    app = create_app(webhook_secret=SECRET, client_factory=FakeClient)
    body = b"{not json"
    status, _ = _post(app, body, {"X-GitHub-Event": "workflow_run", "X-Hub-Signature-256": _sign(body)})
    assert status == 400


def test_webhook_processes_completed_run():
    created = []

    def factory():
        client = FakeClient()
        client.created = created
        return client

    app = create_app(webhook_secret=SECRET, client_factory=factory)
    body = json.dumps(_payload()).encode("utf-8")
    status, data = _post(app, body, {"X-GitHub-Event": "workflow_run", "X-Hub-Signature-256": _sign(body)})
    assert status == 200
    assert data == {"pull_requests": [12]}
    assert len(created) == 1
    assert "⚠️warning" in created[0][1]


def test_webhook_rejects_unsigned_delivery():
    created = []

    def factory():
        client = FakeClient()
        client.created = created
        return client

    app = create_app(webhook_secret=SECRET, client_factory=factory)
    body = json.dumps(_payload()).encode("utf-8")
    status, _ = _post(app, body, {"X-GitHub-Event": "workflow_run"})
    assert status == 401
    assert created == []


@pytest.mark.parametrize("secret", ["", None])
def test_create_app_requires_secret(secret):
    with pytest.raises(ConfigError, match="WEBHOOK_SECRET"):
        create_app(webhook_secret=secret, client_factory=FakeClient)
