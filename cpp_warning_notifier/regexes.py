# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Regex catalog for `cpp_warning_notifier`.

Conventions:
- ISSUE_*  : first-issue detection in compiler output
- CONFIG_* : helpers for user-supplied patterns

This module is intentionally "boring":
- no side effects
- no imports from other `cpp_warning_notifier` modules (avoid cycles)
"""

from __future__ import annotations

import re
from typing import Pattern

# Sentinel printed by the build step right before the compiler runs. Lines before it are
# CI preamble (checkout, toolchain setup, ...) and do not count towards the reported line.
LOG_MARKER = "CPPWARNINGNOTIFIER_LOG_MARKER"

#
# =============================================================================
# ISSUE_* (first-issue detection)
# =============================================================================
#

# GCC/Clang:  foo.cpp:12:5: warning: unused variable 'x' [-Wunused-variable]
# MSVC:       foo.cpp(12): warning C4996: 'strcpy': This function may be unsafe.
# The optional group is " <any char><digits>", which is what makes the MSVC code match.
ISSUE_WARNING_RE: Pattern[str] = re.compile(r"warning( .\d+)?:")
ISSUE_ERROR_RE: Pattern[str] = re.compile(r"error( .\d+)?:")

#
# =============================================================================
# CONFIG_* (user patterns)
# =============================================================================
#

# JavaScript-style named group `(?<name>...)`; lookbehinds `(?<=` / `(?<!` are left alone.
CONFIG_JS_NAMED_GROUP_RE: Pattern[str] = re.compile(r"\(\?<(?=[A-Za-z_])")


def to_python_pattern(pattern: str) -> str:
    """Rewrite JavaScript named groups so `re` accepts patterns written for the Action inputs."""
    return CONFIG_JS_NAMED_GROUP_RE.sub("(?P<", pattern or "")
