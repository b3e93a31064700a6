# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
C++ build-matrix warning notifier.

This package contains the implementation for:
- log classification (first warning/error line after the log marker)
- grouping job results into an (environment x standard) grid
- rendering that grid as an HTML table for a PR comment
- deciding whether to repost the comment and outdate the previous one

Public API is re-exported from:
- `cpp_warning_notifier.engine` for log classification and row extraction
- `cpp_warning_notifier.render` for the table
- `cpp_warning_notifier.reconcile` for the comment policy
"""

from .common_types import CompileStatus, CommentRecord, ResultRow  # noqa: F401
from .config import NotifierConfig  # noqa: F401
from .engine import extract_row, locate_first_issue  # noqa: F401
from .reconcile import plan_comment_update, post_or_update_comment  # noqa: F401
from .render import generate_table  # noqa: F401

__all__ = [
    "CommentRecord",
    "CompileStatus",
    "NotifierConfig",
    "ResultRow",
    "extract_row",
    "generate_table",
    "locate_first_issue",
    "plan_comment_update",
    "post_or_update_comment",
]
