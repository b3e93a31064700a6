# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Webhook server: react to `workflow_run.completed` and comment on the run's PRs.

Endpoints:
  GET  /                       service description (JSON)
  POST /api/github/webhooks    GitHub webhook deliveries

Each repository opts in with `.github/cpp-warning-notifier.json`; repositories without it
are skipped. The pipeline itself is synchronous (requests), so it runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from aiohttp import web

from .config import REPO_CONFIG_PATH, parse_config_text
from .exceptions import ConfigError
from .github_api import GitHubAPIClient
from .pipeline import run_notifier

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/api/github/webhooks"

CLIENT_FACTORY_KEY = web.AppKey("client_factory", Callable[[], GitHubAPIClient])
SECRET_KEY = web.AppKey("webhook_secret", str)


def verify_signature(secret: str, body: bytes, signature_header: Optional[str]) -> bool:
    """Check `X-Hub-Signature-256: sha256=<hexdigest>` against the shared secret."""
    if not signature_header or not signature_header.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header[len("sha256="):])


def handle_workflow_run(client: GitHubAPIClient, payload: Dict[str, Any]) -> List[int]:
    """Run the notifier for every PR of a completed workflow run; returns the PR numbers handled."""
    repository = payload.get("repository") or {}
    workflow_run = payload.get("workflow_run") or {}
    owner = str((repository.get("owner") or {}).get("login") or "")
    repo = str(repository.get("name") or "")
    run_id = int(workflow_run.get("id") or 0)

    pull_requests = workflow_run.get("pull_requests") or []
    if not pull_requests:
        logger.info("run %s: no associated pull requests, skipping", run_id)
        return []

    text = client.get_repo_file_text(owner, repo, REPO_CONFIG_PATH)
    if text is None:
        logger.info("%s/%s: no %s, skipping", owner, repo, REPO_CONFIG_PATH)
        return []
    try:
        config = parse_config_text(text)
    except ConfigError as e:
        logger.warning("%s/%s: invalid %s: %s", owner, repo, REPO_CONFIG_PATH, e)
        return []

    handled: List[int] = []
    for pr in pull_requests:
        number = int(pr["number"])
        logger.info("processing run %s for PR #%d in %s/%s", run_id, number, owner, repo)
        run_notifier(client, owner=owner, repo=repo, run_id=run_id, pr_number=number, config=config)
        handled.append(number)
    return handled


async def index(request: web.Request) -> web.Response:
    return web.json_response({
        "service": "cpp-warning-notifier",
        "description": "Comments a C++ build-matrix warning table on pull requests "
                       "when a workflow run completes.",
        "endpoints": {f"POST {WEBHOOK_PATH}": "GitHub webhook deliveries (workflow_run)"},
    })


async def webhook(request: web.Request) -> web.Response:
    body = await request.read()
    if not verify_signature(request.app[SECRET_KEY], body, request.headers.get("X-Hub-Signature-256")):
        return web.json_response({"error": "invalid signature"}, status=401)

    event = request.headers.get("X-GitHub-Event", "")
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        return web.json_response({"error": "invalid JSON payload"}, status=400)

    if event == "ping":
        return web.json_response({"ok": True})
    if event != "workflow_run" or payload.get("action") != "completed":
        return web.json_response({"ignored": f"{event}.{payload.get('action', '')}"}, status=202)

    client = request.app[CLIENT_FACTORY_KEY]()
    loop = asyncio.get_running_loop()
    try:
        handled = await loop.run_in_executor(None, handle_workflow_run, client, payload)
    except Exception:
        logger.exception("workflow_run handling failed")
        return web.json_response({"error": "processing failed"}, status=500)
    finally:
        logger.info("GitHub API usage: %s", client.stats.summary())
    return web.json_response({"pull_requests": handled})


def create_app(*, webhook_secret: str, client_factory: Optional[Callable[[], GitHubAPIClient]] = None) -> web.Application:
    """Build the webhook app. Raises ConfigError when `webhook_secret` is empty."""
    if not webhook_secret:
        raise ConfigError("a webhook secret is required (set WEBHOOK_SECRET)")
    app = web.Application()
    app[SECRET_KEY] = webhook_secret
    app[CLIENT_FACTORY_KEY] = client_factory or GitHubAPIClient
    app.router.add_get("/", index)
    app.router.add_post(WEBHOOK_PATH, webhook)
    return app


def serve(*, host: str, port: int, webhook_secret: str, token: Optional[str]) -> None:
    app = create_app(webhook_secret=webhook_secret, client_factory=lambda: GitHubAPIClient(token=token))
    logger.info("webhook server listening on %s:%d", host, port)
    web.run_app(app, host=host, port=port, print=None)
