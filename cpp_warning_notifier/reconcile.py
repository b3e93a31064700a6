# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Decide whether to post a new matrix comment and retire the previous one.

Policy:
- no previous bot comment: post
- previous bot comment exists: repost (minimize the old one as OUTDATED, then post)
  only when the new body or the old body mentions "warning"; otherwise leave the
  thread alone. Comments are never edited in place.

The minimize + post pair is not atomic. If the post fails after the minimize succeeded,
the thread is left with no visible bot comment until the next run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol

from .common_types import CommentRecord

logger = logging.getLogger(__name__)

WARNING_GATE_TOKEN = "warning"


class CommentAPI(Protocol):
    def list_issue_comments(self, owner: str, repo: str, number: int) -> List[CommentRecord]: ...

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> CommentRecord: ...

    def minimize_comment(self, node_id: str, classifier: str = "OUTDATED") -> None: ...


@dataclass(frozen=True)
class CommentPlan:
    post: bool
    minimize: Optional[CommentRecord] = None
    reason: str = ""


def latest_bot_comment(comments: Iterable[CommentRecord], bot_login: str) -> Optional[CommentRecord]:
    mine = [c for c in comments if c.author_login == bot_login]
    if not mine:
        return None
    # sorted() is stable, so equal timestamps keep listing order.
    return sorted(mine, key=lambda c: c.created_at_dt)[-1]


def plan_comment_update(body: str, comments: Iterable[CommentRecord], bot_login: str) -> CommentPlan:
    if not body:
        return CommentPlan(post=False, reason="empty body")

    previous = latest_bot_comment(comments, bot_login)
    if previous is None:
        return CommentPlan(post=True, reason="no previous bot comment")

    if WARNING_GATE_TOKEN in body or WARNING_GATE_TOKEN in (previous.body or ""):
        return CommentPlan(post=True, minimize=previous, reason="warning in new or previous comment")
    return CommentPlan(post=False, reason="no warning in new or previous comment")


def post_or_update_comment(
    api: CommentAPI,
    *,
    owner: str,
    repo: str,
    pr_number: int,
    body: str,
    bot_login: str,
) -> CommentPlan:
    """Apply `plan_comment_update` against the API. API errors propagate to the caller."""
    if not body:
        return CommentPlan(post=False, reason="empty body")

    comments = api.list_issue_comments(owner, repo, pr_number)
    plan = plan_comment_update(body, comments, bot_login)
    logger.info("PR #%d: %s", pr_number, plan.reason)

    if plan.minimize is not None:
        logger.info("outdating previous comment %s", plan.minimize.node_id)
        api.minimize_comment(plan.minimize.node_id, classifier="OUTDATED")
    if plan.post:
        logger.info("leaving comment on %s/%s#%d", owner, repo, pr_number)
        api.create_issue_comment(owner, repo, pr_number, body)
    return plan
