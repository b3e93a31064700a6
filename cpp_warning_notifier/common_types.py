# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared types used by the engine, the renderer and the GitHub glue.

This module MUST NOT import other `cpp_warning_notifier` modules to avoid cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# Cell address in the rendered grid: row-header values followed by the column value.
CompositeKey = Tuple[str, ...]

RESERVED_ROW_FIELDS = ("url", "status")


class CompileStatus(str, Enum):
    """Outcome labels rendered in the table cells (glyph + word)."""

    SUCCESS = "✅success"
    WARNING = "⚠️warning"
    ERROR = "❌error"


class IssueKind(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class IssueMatch:
    """First warning (or, failing that, first error) line in a log."""

    index: int  # 0-based line index in the full log
    kind: IssueKind
    line: str = ""


@dataclass(frozen=True)
class IssueLocation:
    """Result of scanning one job log."""

    status: CompileStatus
    first_issue_line: int  # 1-based, relative to the marker line
    marker_index: Optional[int] = None
    issue: Optional[IssueMatch] = None
    total_lines: int = 0


@dataclass(frozen=True)
class ResultRow:
    """One table cell worth of data for one job.

    `url` and `status` are fixed; everything else comes from the job-name pattern's
    named groups (e.g. os/compiler/std) and is kept in `fields` in capture order.
    """

    url: str
    status: str
    fields: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str, default: str = "") -> str:
        if name == "url":
            return self.url
        if name == "status":
            return self.status
        return self.fields.get(name, default)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ResultRow":
        extra = {
            str(k): str(v)
            for k, v in d.items()
            if k not in RESERVED_ROW_FIELDS and v is not None
        }
        return cls(url=str(d.get("url") or ""), status=str(d.get("status") or ""), fields=extra)


@dataclass(frozen=True)
class JobStep:
    name: str
    status: str  # "queued", "in_progress", "completed"
    conclusion: Optional[str] = None  # "success", "failure", "skipped", ...

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "JobStep":
        return cls(
            name=str(d.get("name") or ""),
            status=str(d.get("status") or ""),
            conclusion=d.get("conclusion"),
        )


@dataclass(frozen=True)
class JobInfo:
    """Subset of a GitHub Actions job payload (GET /actions/runs/{run_id}/jobs)."""

    id: int
    name: str
    steps: Tuple[JobStep, ...] = ()

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "JobInfo":
        steps = tuple(JobStep.from_api(s) for s in (d.get("steps") or []) if isinstance(s, dict))
        return cls(id=int(d["id"]), name=str(d.get("name") or ""), steps=steps)


def _parse_iso8601(value: str) -> datetime:
    s = (value or "").strip()
    if not s:
        return datetime.min.replace(tzinfo=timezone.utc)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class CommentRecord:
    """Issue comment on a pull request (GET /repos/{owner}/{repo}/issues/{n}/comments)."""

    node_id: str
    created_at: str  # ISO 8601, e.g. "2026-01-24T09:30:00Z"
    author_login: str
    body: str = ""
    id: Optional[int] = None

    @property
    def created_at_dt(self) -> datetime:
        return _parse_iso8601(self.created_at)

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "CommentRecord":
        user = d.get("user") or {}
        return cls(
            node_id=str(d.get("node_id") or ""),
            created_at=str(d.get("created_at") or ""),
            author_login=str(user.get("login") or "") if isinstance(user, dict) else "",
            body=str(d.get("body") or ""),
            id=d.get("id"),
        )
