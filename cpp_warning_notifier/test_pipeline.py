"""
Pytest tests for pipeline.py (sequential row collection + full run) with a fake API.

Run from the repository root:
    pytest cpp_warning_notifier/test_pipeline.py -v
"""

import requests

from cpp_warning_notifier.common_types import CommentRecord, JobInfo, JobStep
from cpp_warning_notifier.config import NotifierConfig
from cpp_warning_notifier.exceptions import GitHubNotFoundError
from cpp_warning_notifier.pipeline import collect_rows, run_notifier
from cpp_warning_notifier.regexes import LOG_MARKER

CONFIG = NotifierConfig.from_mapping({
    "job_regex": r"^(?<os>\w+) C\+\+(?<std>\d+)$",
    "step_regex": "^Build$",
    "row_headers": ["os"],
    "column_header": "std",
})

STEPS = (JobStep("Set up job", "completed", "success"), JobStep("Build", "completed", "success"))


class FakeAPI:
    """Comments it creates are authored by `login`, like a token-backed client."""

    def __init__(self, jobs, logs, comments=(), login="github-actions[bot]"):
        self.jobs = jobs
        self.logs = logs
        self.comments = list(comments)
        self.login = login
        self.log_requests = []
        self.created = []
        self.minimized = []

    def list_jobs_for_workflow_run(self, owner, repo, run_id):
        return list(self.jobs)

    def get_job_log_text(self, owner, repo, job_id):
        self.log_requests.append(job_id)
        log = self.logs[job_id]
        if isinstance(log, Exception):
            raise log
        return log

    def list_issue_comments(self, owner, repo, number):
        return list(self.comments)

    def create_issue_comment(self, owner, repo, number, body):
        comment = CommentRecord(
            node_id=f"N{len(self.created)}",
            created_at=f"2026-01-01T00:00:{len(self.created):02d}Z",
            author_login=self.login,
            body=body,
        )
        self.created.append(body)
        self.comments.append(comment)
        return comment

    def minimize_comment(self, node_id, classifier="OUTDATED"):
        self.minimized.append(node_id)

    def get_authenticated_login(self, *, installation_login=None):
        return self.login


def _jobs():
    return [
        JobInfo(1, "ubuntu C++20", STEPS),
        JobInfo(2, "ubuntu C++23", STEPS),
        JobInfo(3, "notify", STEPS),
        JobInfo(4, "macos C++20", STEPS),
    ]


def test_collect_rows_skips_failures_and_mismatches():
    api = FakeAPI(
        _jobs(),
        {
            1: f"{LOG_MARKER}\nok",
            2: requests.ConnectionError("reset"),
            3: "",
            4: GitHubNotFoundError(status_code=404, endpoint="/logs", message="gone"),
        },
    )
    rows = collect_rows(api, owner="o", repo="r", run_id=9, config=CONFIG)
    assert [r.url for r in rows] == ["https://github.com/o/r/actions/runs/9/job/1#step:2:1"]
    assert api.log_requests == [1, 2, 3, 4]


def test_collect_rows_excludes_own_job():
    api = FakeAPI(_jobs(), {1: "", 2: "", 3: "", 4: ""})
    rows = collect_rows(api, owner="o", repo="r", run_id=9, config=CONFIG, exclude_job_id=3)
    assert 3 not in api.log_requests
    assert [r.get("os") for r in rows] == ["ubuntu", "ubuntu", "macos"]


def test_run_notifier_posts_table():
    api = FakeAPI(
        _jobs(),
        {
            1: f"{LOG_MARKER}\na.cpp:1:1: warning: w",
            2: f"{LOG_MARKER}\nfine",
            3: "",
            4: f"{LOG_MARKER}\nb.cpp:2:2: error: e",
        },
    )
    result = run_notifier(api, owner="o", repo="r", run_id=9, pr_number=12, config=CONFIG, exclude_job_id=3)
    assert result.plan.post
    assert api.created == [result.body]
    assert result.body.startswith("<table>")
    assert "<th>C++20</th><th>C++23</th>" in result.body
    assert result.body.index("macos") < result.body.index("ubuntu")


def test_run_notifier_dry_run_does_not_comment():
    api = FakeAPI(_jobs()[:1], {1: f"{LOG_MARKER}\nok"})
    result = run_notifier(api, owner="o", repo="r", run_id=9, pr_number=12, config=CONFIG, dry_run=True)
    assert result.plan is None
    assert api.created == []
    assert "✅success" in result.body


def _warning_logs():
    return {1: f"{LOG_MARKER}\na.cpp:1:1: warning: w", 2: f"{LOG_MARKER}\nfine", 3: "", 4: f"{LOG_MARKER}\nok"}


def test_repeated_runs_leave_one_live_comment():
    api = FakeAPI(_jobs(), _warning_logs())
    for _ in range(3):
        run_notifier(api, owner="o", repo="r", run_id=9, pr_number=12, config=CONFIG, exclude_job_id=3)
    assert [c.node_id for c in api.comments] == ["N0", "N1", "N2"]
    assert api.minimized == ["N0", "N1"]
    assert all(c.author_login == "github-actions[bot]" for c in api.comments)


def test_configured_bot_login_wins_over_token_identity():
    cfg = NotifierConfig.from_mapping({
        "job_regex": r"^(?<os>\w+) C\+\+(?<std>\d+)$",
        "step_regex": "^Build$",
        "row_headers": ["os"],
        "column_header": "std",
        "bot_login": "someone-else[bot]",
    })
    api = FakeAPI(_jobs(), _warning_logs())
    for _ in range(2):
        run_notifier(api, owner="o", repo="r", run_id=9, pr_number=12, config=cfg, exclude_job_id=3)
    # Our own comments are not authored by the configured login, so none is outdated.
    assert api.minimized == []
    assert len(api.comments) == 2
