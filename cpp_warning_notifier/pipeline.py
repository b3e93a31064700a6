# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""End-to-end run: workflow run jobs -> rows -> table -> PR comment.

Jobs are processed one at a time in listing order. A job whose log cannot be fetched
is logged and skipped (no retry); everything after row collection is deterministic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

import requests

from .common_types import JobInfo, ResultRow
from .config import NotifierConfig
from .engine import extract_row
from .exceptions import GitHubAPIError
from .reconcile import CommentAPI, CommentPlan, post_or_update_comment
from .render import generate_table

logger = logging.getLogger(__name__)


class JobsAPI(Protocol):
    def list_jobs_for_workflow_run(self, owner: str, repo: str, run_id: int) -> List[JobInfo]: ...

    def get_job_log_text(self, owner: str, repo: str, job_id: int) -> str: ...


def collect_rows(
    api: JobsAPI,
    *,
    owner: str,
    repo: str,
    run_id: int,
    config: NotifierConfig,
    exclude_job_id: Optional[int] = None,
) -> List[ResultRow]:
    """One row per job whose name matches `config.job_regex`.

    `exclude_job_id` is the job running the notifier itself (its log is still being written).
    """
    rows: List[ResultRow] = []
    for job in api.list_jobs_for_workflow_run(owner, repo, run_id):
        if exclude_job_id is not None and job.id == exclude_job_id:
            continue
        try:
            log_text = api.get_job_log_text(owner, repo, job.id)
        except (GitHubAPIError, requests.RequestException) as e:
            logger.warning("failed to retrieve job log for %s: %s: %s", job.id, type(e).__name__, e)
            continue

        logger.info('job name is "%s"', job.name)
        row = extract_row(job, log_text, config, owner=owner, repo=repo, run_id=run_id)
        if row is not None:
            rows.append(row)

    logger.info("collected %d row(s) from run %s", len(rows), run_id)
    return rows


@dataclass(frozen=True)
class NotifierResult:
    rows: List[ResultRow]
    body: str
    plan: Optional[CommentPlan]  # None on dry runs


class NotifierAPI(JobsAPI, CommentAPI, Protocol):
    def get_authenticated_login(self, *, installation_login: Optional[str] = None) -> str: ...


def run_notifier(
    api: NotifierAPI,
    *,
    owner: str,
    repo: str,
    run_id: int,
    pr_number: int,
    config: NotifierConfig,
    exclude_job_id: Optional[int] = None,
    dry_run: bool = False,
    bot_login: Optional[str] = None,
) -> NotifierResult:
    """Collect rows, render the table and reconcile the PR comment.

    The comment author to reconcile against is `bot_login`, else `config.bot_login`, else
    whoever the client authenticates as (resolved only when comments are touched).
    """
    rows = collect_rows(
        api, owner=owner, repo=repo, run_id=run_id, config=config, exclude_job_id=exclude_job_id
    )
    body = generate_table(
        rows, config.row_headers, config.column_header, column_label_prefix=config.column_label_prefix
    )
    logger.info("body is %s", body)

    if dry_run:
        logger.info("dry run: not touching comments on %s/%s#%d", owner, repo, pr_number)
        return NotifierResult(rows=rows, body=body, plan=None)

    login = bot_login or config.bot_login or api.get_authenticated_login()
    plan = post_or_update_comment(
        api, owner=owner, repo=repo, pr_number=pr_number, body=body, bot_login=login
    )
    return NotifierResult(rows=rows, body=body, plan=plan)
