# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
CLI wrapper for cpp_warning_notifier.

We keep CLI glue in its own module so the engine/renderer stay easy to reuse from
the webhook server and from tests.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

import requests

from . import engine
from .common_types import ResultRow
from .config import GITHUB_ACTIONS_BOT_LOGIN, ActionContext, NotifierConfig, load_config_file
from .exceptions import ConfigError, GitHubAPIError
from .github_api import GitHubAPIClient
from .pipeline import run_notifier
from .regexes import LOG_MARKER
from .render import generate_table

logger = logging.getLogger(__name__)


def _run_action(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    if not ActionContext.is_pull_request_ref(environ.get("GITHUB_REF")):
        logger.info("not a pull request, exiting.")
        return 0
    try:
        ctx = ActionContext.from_env(environ)
        config = NotifierConfig.from_action_env(environ)
    except ConfigError as e:
        logger.error("ERROR: %s", e)
        return 2

    dry_run = bool(getattr(args, "dry_run", False))
    client = GitHubAPIClient(token=environ.get("GITHUB_TOKEN") or None)
    try:
        bot_login = None
        if not dry_run and not config.bot_login:
            # GITHUB_TOKEN is an installation token: /user is refused and comments are authored by the Actions bot.
            bot_login = client.get_authenticated_login(installation_login=GITHUB_ACTIONS_BOT_LOGIN)
        result = run_notifier(
            client,
            owner=ctx.owner,
            repo=ctx.repo,
            run_id=ctx.run_id,
            pr_number=ctx.pr_number,
            config=config,
            exclude_job_id=ctx.job_id,
            dry_run=dry_run,
            bot_login=bot_login,
        )
    except (GitHubAPIError, requests.RequestException) as e:
        logger.error("ERROR: GitHub API call failed: %s", e)
        return 1
    finally:
        logger.info("GitHub API usage: %s", client.stats.summary())

    if dry_run:
        sys.stdout.write(result.body + "\n")
    return 0


def _run_classify(args: argparse.Namespace) -> int:
    log_path = Path(args.log_file).expanduser()
    if not log_path.is_file():
        logger.error("ERROR: file not found: %s", log_path)
        return 2
    text = log_path.read_text(encoding="utf-8", errors="replace")
    loc = engine.locate_first_issue(text, marker=args.marker)
    marker = "absent" if loc.marker_index is None else f"line {loc.marker_index + 1}"
    sys.stdout.write(f"status: {loc.status.value}\n")
    sys.stdout.write(f"first_issue_line: {loc.first_issue_line}\n")
    sys.stdout.write(f"marker: {marker}\n")
    if loc.issue is not None:
        sys.stdout.write(f"matched: {loc.issue.line.rstrip()}\n")
    return 0


def _run_render(args: argparse.Namespace) -> int:
    try:
        config = load_config_file(Path(args.config))
    except ConfigError as e:
        logger.error("ERROR: %s", e)
        return 2
    try:
        raw = json.loads(Path(args.rows_json).expanduser().read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("ERROR: cannot read rows from %s: %s", args.rows_json, e)
        return 2
    if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
        logger.error("ERROR: %s must contain a JSON list of objects", args.rows_json)
        return 2
    rows = [ResultRow.from_dict(r) for r in raw]
    table = generate_table(
        rows, config.row_headers, config.column_header, column_label_prefix=config.column_label_prefix
    )
    sys.stdout.write(table + "\n")
    return 0


def _run_serve(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    # Imported lazily: aiohttp is only needed for the server.
    from .server import serve

    try:
        serve(
            host=args.host,
            port=int(args.port),
            webhook_secret=environ.get("WEBHOOK_SECRET", ""),
            token=environ.get("GITHUB_TOKEN") or None,
        )
    except ConfigError as e:
        logger.error("ERROR: %s", e)
        return 2
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpp-warning-notifier",
        description="Summarize a C++ build matrix (success/warning/error per job) as a PR comment.",
        epilog="Examples:\n"
               "  %(prog)s action --dry-run            # inside a GitHub Action (INPUT_* env)\n"
               "  %(prog)s classify build.log          # first warning/error of a local log\n"
               "  %(prog)s render rows.json --config notifier.json\n"
               "  %(prog)s serve --port 3000           # webhook server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command")

    p_action = sub.add_parser("action", help="Run inside a GitHub Action (default).")
    p_action.add_argument("--dry-run", action="store_true", help="Render and print the table; do not comment.")

    p_classify = sub.add_parser("classify", help="Classify a local job log.")
    p_classify.add_argument("log_file", help="Path to a raw job log")
    p_classify.add_argument("--marker", default=LOG_MARKER, help=f"Marker substring (default: {LOG_MARKER})")

    p_render = sub.add_parser("render", help="Render a table from a JSON list of rows.")
    p_render.add_argument("rows_json", help="JSON file: [{\"url\": ..., \"status\": ..., <fields>...}, ...]")
    p_render.add_argument("--config", required=True, help="JSON/YAML config file (row_headers, column_header, ...)")

    p_serve = sub.add_parser("serve", help="Run the webhook server.")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=int(os.environ.get("PORT", "3000")))
    return parser


def _cli(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    env = os.environ if environ is None else environ

    command = args.command or "action"
    if command == "action":
        return _run_action(args, env)
    if command == "classify":
        return _run_classify(args)
    if command == "render":
        return _run_render(args)
    if command == "serve":
        return _run_serve(args, env)
    parser.error(f"unknown command: {command}")
    return 2


def main() -> None:
    raise SystemExit(_cli())
