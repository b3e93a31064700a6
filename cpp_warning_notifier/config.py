# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Notifier configuration.

One `NotifierConfig` value is built (and validated) once at startup and passed into
every core call. Core functions never read the environment themselves.

Sources:
- GitHub Action inputs (INPUT_* environment variables), see `NotifierConfig.from_action_env`
- a local JSON/YAML file, see `load_config_file`
- the repository's `.github/cpp-warning-notifier.json` (webhook server), see `parse_config_text`

Example file:
    {
      "job_regex": "^(?<os>[^ ]+) (?<compiler>[^ ]+) C\\+\\+(?<std>\\d+)$",
      "step_regex": "^Build$",
      "row_headers": ["os", "compiler"],
      "column_header": "std",
      "ignore_no_marker": false
    }
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Pattern, Tuple

import yaml

from .common_types import RESERVED_ROW_FIELDS
from .exceptions import ConfigError
from .regexes import to_python_pattern

GITHUB_ACTIONS_BOT_LOGIN = "github-actions[bot]"
DEFAULT_COLUMN_LABEL_PREFIX = "C++"
REPO_CONFIG_PATH = ".github/cpp-warning-notifier.json"


def compile_user_pattern(pattern: Any, *, name: str) -> Pattern[str]:
    if not isinstance(pattern, str) or not pattern:
        raise ConfigError(f"{name} must be a non-empty string")
    try:
        return re.compile(to_python_pattern(pattern))
    except re.error as e:
        raise ConfigError(f"{name} is not a valid regular expression: {e}") from e


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


def _parse_row_headers(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        # Action inputs carry the list as JSON text; YAML flow lists (`[os, compiler]`) work too.
        try:
            value = yaml.safe_load(value)
        except yaml.YAMLError as e:
            raise ConfigError(f"row_headers is not a valid list: {e}") from e
    if not isinstance(value, (list, tuple)) or not value:
        raise ConfigError("row_headers must be a non-empty list of field names")
    out = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"row_headers entries must be non-empty strings (got {item!r})")
        out.append(item.strip())
    return tuple(out)


@dataclass(frozen=True)
class NotifierConfig:
    job_regex: Pattern[str]
    step_regex: Pattern[str]
    row_headers: Tuple[str, ...]
    column_header: str
    ignore_no_marker: bool = False
    bot_login: Optional[str] = None  # None: the login the token authenticates as
    column_label_prefix: str = DEFAULT_COLUMN_LABEL_PREFIX

    def __post_init__(self) -> None:
        if not self.row_headers:
            raise ConfigError("row_headers must be a non-empty list of field names")
        if not self.column_header:
            raise ConfigError("column_header must be a non-empty field name")
        clash = sorted(set(self.job_regex.groupindex) & set(RESERVED_ROW_FIELDS))
        if clash:
            raise ConfigError(f"job_regex must not define reserved group name(s): {', '.join(clash)}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "NotifierConfig":
        """Build from a plain mapping (config file or JSON payload)."""
        if not isinstance(data, Mapping):
            raise ConfigError(f"config must be a mapping (got {type(data).__name__})")
        for key in ("job_regex", "step_regex", "row_headers", "column_header"):
            if data.get(key) in (None, ""):
                raise ConfigError(f"missing required config field: {key}")
        column_header = data["column_header"]
        if not isinstance(column_header, str) or not column_header.strip():
            raise ConfigError("column_header must be a non-empty string")
        return cls(
            job_regex=compile_user_pattern(data["job_regex"], name="job_regex"),
            step_regex=compile_user_pattern(data["step_regex"], name="step_regex"),
            row_headers=_parse_row_headers(data["row_headers"]),
            column_header=column_header.strip(),
            ignore_no_marker=_parse_bool(data.get("ignore_no_marker", False)),
            bot_login=str(data["bot_login"]) if data.get("bot_login") else None,
            column_label_prefix=str(data.get("column_label_prefix", DEFAULT_COLUMN_LABEL_PREFIX)),
        )

    @classmethod
    def from_action_env(cls, environ: Mapping[str, str]) -> "NotifierConfig":
        """Build from GitHub Action inputs (INPUT_JOB_REGEX, INPUT_ROW_HEADERS, ...)."""
        data: Dict[str, Any] = {
            "job_regex": require_env(environ, "INPUT_JOB_REGEX"),
            "step_regex": require_env(environ, "INPUT_STEP_REGEX"),
            "row_headers": require_env(environ, "INPUT_ROW_HEADERS"),
            "column_header": require_env(environ, "INPUT_COLUMN_HEADER"),
            "ignore_no_marker": environ.get("INPUT_IGNORE_NO_MARKER", "false"),
        }
        if environ.get("INPUT_BOT_LOGIN"):
            data["bot_login"] = environ["INPUT_BOT_LOGIN"]
        return cls.from_mapping(data)


def require_env(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name)
    if not value:
        raise ConfigError(f"Missing required environment variable: {name}")
    return value


def parse_config_text(text: str) -> NotifierConfig:
    """Parse JSON or YAML config text (JSON is valid YAML)."""
    try:
        data = yaml.safe_load(text or "")
    except yaml.YAMLError as e:
        raise ConfigError(f"config is not valid JSON/YAML: {e}") from e
    if data is None:
        raise ConfigError("config is empty")
    return NotifierConfig.from_mapping(data)


def load_config_file(path: Path) -> NotifierConfig:
    p = Path(path).expanduser()
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config file {p}: {e}") from e
    return parse_config_text(text)


@dataclass(frozen=True)
class ActionContext:
    """Where the Action is running: repository, PR, workflow run and its own job."""

    owner: str
    repo: str
    pr_number: int
    run_id: int
    job_id: Optional[int] = None

    @staticmethod
    def is_pull_request_ref(ref: Optional[str]) -> bool:
        return bool(ref) and str(ref).startswith("refs/pull/")

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "ActionContext":
        """Build from GITHUB_REPOSITORY / GITHUB_REF / INPUT_RUN_ID / INPUT_JOB_ID.

        Callers check `is_pull_request_ref(GITHUB_REF)` first; a non-PR ref is a ConfigError here.
        """
        repository = require_env(environ, "GITHUB_REPOSITORY")
        ref = require_env(environ, "GITHUB_REF")
        if not cls.is_pull_request_ref(ref):
            raise ConfigError(f"GITHUB_REF is not a pull request ref: {ref}")
        if repository.count("/") != 1:
            raise ConfigError(f"GITHUB_REPOSITORY must look like owner/repo (got {repository!r})")
        owner, repo = repository.split("/")
        # refs/pull/123/merge
        try:
            pr_number = int(ref.split("/")[2])
            run_id = int(require_env(environ, "INPUT_RUN_ID"))
            job_id_raw = environ.get("INPUT_JOB_ID")
            job_id = int(job_id_raw) if job_id_raw else None
        except (IndexError, ValueError) as e:
            raise ConfigError(f"invalid Action context: {e}") from e
        return cls(owner=owner, repo=repo, pr_number=pr_number, run_id=run_id, job_id=job_id)
