# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Log classification for one build job.

- `locate_first_issue()` scans a raw job log and reports success/warning/error plus the
  1-based line of the first issue, counted from the marker line.
- `extract_row()` turns one job (name, steps, log) into a `ResultRow` with a deep link
  to that line in the GitHub Actions UI.

Both are pure functions over text; fetching logs lives in `pipeline.py`.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Pattern, Sequence

from .common_types import (
    CompileStatus,
    IssueKind,
    IssueLocation,
    IssueMatch,
    JobInfo,
    JobStep,
    ResultRow,
)
from .config import NotifierConfig
from .regexes import ISSUE_ERROR_RE, ISSUE_WARNING_RE, LOG_MARKER

logger = logging.getLogger(__name__)

GITHUB_WEB_URL = "https://github.com"

_STATUS_BY_KIND = {
    IssueKind.WARNING: CompileStatus.WARNING,
    IssueKind.ERROR: CompileStatus.ERROR,
}


def split_log_lines(log_text: str) -> List[str]:
    """Split on "\\n" only; a trailing "\\r" stays on the line, like the Actions UI numbering."""
    return (log_text or "").split("\n")


def find_marker_index(lines: Sequence[str], marker: str = LOG_MARKER) -> Optional[int]:
    """Index of the first line containing `marker` (None when absent)."""
    for i, line in enumerate(lines):
        if marker in line:
            return i
    return None


def _find_first(lines: Sequence[str], regex: Pattern[str], kind: IssueKind) -> Optional[IssueMatch]:
    for i, line in enumerate(lines):
        if regex.search(line):
            logger.debug("%s index: %d, matched line: %s", kind.value, i, line)
            return IssueMatch(index=i, kind=kind, line=line)
    return None


def find_first_issue(lines: Sequence[str]) -> Optional[IssueMatch]:
    """First warning line; the error scan only runs when there is no warning anywhere."""
    return _find_first(lines, ISSUE_WARNING_RE, IssueKind.WARNING) or _find_first(
        lines, ISSUE_ERROR_RE, IssueKind.ERROR
    )


def locate_first_issue(log_text: str, *, marker: str = LOG_MARKER) -> IssueLocation:
    """Classify a job log.

    The reported line is `issue.index - marker_index + 1` (marker missing => offset 0).
    A clean log reports line 1. No clamping: an issue printed *before* the marker yields
    a line <= 0, which only happens when the marker is emitted late.
    """
    lines = split_log_lines(log_text)
    marker_index = find_marker_index(lines, marker)
    offset = marker_index if marker_index is not None else 0

    issue = find_first_issue(lines)
    if issue is None:
        return IssueLocation(
            status=CompileStatus.SUCCESS,
            first_issue_line=1,
            marker_index=marker_index,
            issue=None,
            total_lines=len(lines),
        )
    return IssueLocation(
        status=_STATUS_BY_KIND[issue.kind],
        first_issue_line=issue.index - offset + 1,
        marker_index=marker_index,
        issue=issue,
        total_lines=len(lines),
    )


def find_build_step_id(steps: Sequence[JobStep], step_regex: Pattern[str]) -> int:
    """1-based position of the first completed+successful step whose name matches.

    When nothing matches, point one past the last step.
    """
    for i, step in enumerate(steps):
        if step_regex.search(step.name or "") and step.status == "completed" and step.conclusion == "success":
            return i + 1
    return len(steps) + 1


def build_job_url(
    *,
    owner: str,
    repo: str,
    run_id: int,
    job_id: int,
    step_id: int,
    line: int,
    base_url: str = GITHUB_WEB_URL,
) -> str:
    return f"{base_url}/{owner}/{repo}/actions/runs/{run_id}/job/{job_id}#step:{step_id}:{line}"


def extract_row(
    job: JobInfo,
    log_text: str,
    config: NotifierConfig,
    *,
    owner: str,
    repo: str,
    run_id: int,
    marker: str = LOG_MARKER,
    base_url: str = GITHUB_WEB_URL,
) -> Optional[ResultRow]:
    """Build the table row for one job, or None when the job should be skipped.

    Skips (logged, never raised):
    - the log has no marker and `config.ignore_no_marker` is set
    - `job.name` does not match `config.job_regex`
    """
    location = locate_first_issue(log_text, marker=marker)
    logger.debug("job %s: total lines: %d", job.id, location.total_lines)

    if location.marker_index is None and config.ignore_no_marker:
        logger.info("job %s (%s): no %s in log, skipping", job.id, job.name, marker)
        return None

    step_id = find_build_step_id(job.steps, config.step_regex)
    logger.debug("job %s: step_id is %d", job.id, step_id)

    m = config.job_regex.search(job.name or "")
    if not m:
        logger.info('job %s: name "%s" does not match job_regex, skipping', job.id, job.name)
        return None

    fields = {k: v for k, v in m.groupdict().items() if v is not None}
    url = build_job_url(
        owner=owner,
        repo=repo,
        run_id=run_id,
        job_id=job.id,
        step_id=step_id,
        line=location.first_issue_line,
        base_url=base_url,
    )
    return ResultRow(url=url, status=location.status.value, fields=fields)
