# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Error types for cpp_warning_notifier.

These are intentionally lightweight so callers can catch specific error
classes (e.g. 404 Not Found) without creating import cycles.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Invalid or incomplete notifier configuration."""


class GitHubAPIError(Exception):
    def __init__(self, *, status_code: int, endpoint: str, message: str):
        super().__init__(message)
        self.status_code = int(status_code)
        self.endpoint = str(endpoint or "")


class GitHubAuthError(GitHubAPIError):
    pass


class GitHubForbiddenError(GitHubAPIError):
    pass


class GitHubNotFoundError(GitHubAPIError):
    pass


class GitHubRequestError(GitHubAPIError):
    pass


class GitHubGraphQLError(GitHubAPIError):
    pass


def error_for_status(*, status_code: int, endpoint: str, message: str) -> GitHubAPIError:
    """Map an HTTP status code to the matching GitHubAPIError subclass."""
    code = int(status_code)
    if code == 401:
        cls = GitHubAuthError
    elif code == 403:
        cls = GitHubForbiddenError
    elif code == 404:
        cls = GitHubNotFoundError
    else:
        cls = GitHubRequestError
    return cls(status_code=code, endpoint=endpoint, message=message)
