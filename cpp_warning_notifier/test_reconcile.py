"""
Pytest tests for reconcile.py (comment post/outdate policy).

Run from the repository root:
    pytest cpp_warning_notifier/test_reconcile.py -v
"""

import pytest

from cpp_warning_notifier.common_types import CommentRecord
from cpp_warning_notifier.exceptions import GitHubForbiddenError
from cpp_warning_notifier.reconcile import latest_bot_comment, plan_comment_update, post_or_update_comment

BOT = "cppwarningnotifier[bot]"


class FakeCommentAPI:
    """Records calls in order; optionally fails the GraphQL minimize."""

    def __init__(self, comments, *, fail_minimize=False):
        self.comments = list(comments)
        self.fail_minimize = fail_minimize
        self.calls = []

    def list_issue_comments(self, owner, repo, number):
        self.calls.append(("list", number))
        return list(self.comments)

    def create_issue_comment(self, owner, repo, number, body):
        self.calls.append(("create", number, body))
        return CommentRecord(node_id="NEW", created_at="2026-01-02T00:00:00Z", author_login=BOT, body=body)

    def minimize_comment(self, node_id, classifier="OUTDATED"):
        if self.fail_minimize:
            raise GitHubForbiddenError(status_code=403, endpoint="/graphql", message="forbidden")
        self.calls.append(("minimize", node_id, classifier))


def _comment(node_id, created_at, body, login=BOT):
    return CommentRecord(node_id=node_id, created_at=created_at, author_login=login, body=body)


def _mutations(api):
    return [c for c in api.calls if c[0] != "list"]


def test_first_comment_is_posted():
    api = FakeCommentAPI([_comment("H1", "2026-01-01T00:00:00Z", "LGTM", login="human")])
    post_or_update_comment(api, owner="o", repo="r", pr_number=5, body="<table>✅success</table>", bot_login=BOT)
    assert _mutations(api) == [("create", 5, "<table>✅success</table>")]


def test_no_warning_anywhere_means_no_calls():
    api = FakeCommentAPI([_comment("B1", "2026-01-01T00:00:00Z", "<table>✅success</table>")])
    plan = post_or_update_comment(api, owner="o", repo="r", pr_number=5, body="<table>❌error</table>", bot_login=BOT)
    assert not plan.post
    assert _mutations(api) == []


def test_warning_in_new_body_outdates_then_posts():
    api = FakeCommentAPI([_comment("B1", "2026-01-01T00:00:00Z", "<table>✅success</table>")])
    post_or_update_comment(api, owner="o", repo="r", pr_number=5, body="<table>⚠️warning</table>", bot_login=BOT)
    assert _mutations(api) == [
        ("minimize", "B1", "OUTDATED"),
        ("create", 5, "<table>⚠️warning</table>"),
    ]


def test_warning_in_previous_body_outdates_then_posts():
    api = FakeCommentAPI([_comment("B1", "2026-01-01T00:00:00Z", "<table>⚠️warning</table>")])
    post_or_update_comment(api, owner="o", repo="r", pr_number=5, body="<table>✅success</table>", bot_login=BOT)
    assert [c[0] for c in _mutations(api)] == ["minimize", "create"]


def test_only_latest_bot_comment_is_considered():
    comments = [
        _comment("B2", "2026-01-03T00:00:00Z", "<table>✅success</table>"),
        _comment("B1", "2026-01-01T00:00:00Z", "<table>⚠️warning</table>"),
        _comment("H1", "2026-01-04T00:00:00Z", "warning: human comment", login="someone"),
    ]
    assert latest_bot_comment(comments, BOT).node_id == "B2"
    assert not plan_comment_update("<table>✅success</table>", comments, BOT).post


def test_latest_uses_time_not_string_order():
    comments = [
        _comment("B1", "2026-01-01T10:00:00+02:00", "x"),
        _comment("B2", "2026-01-01T09:00:00Z", "y"),
    ]
    # 10:00+02:00 is 08:00Z, so B2 is newer.
    assert latest_bot_comment(comments, BOT).node_id == "B2"


def test_empty_body_does_nothing():
    api = FakeCommentAPI([])
    plan = post_or_update_comment(api, owner="o", repo="r", pr_number=5, body="", bot_login=BOT)
    assert not plan.post
    assert api.calls == []


def test_minimize_failure_propagates_and_skips_post():
    api = FakeCommentAPI([_comment("B1", "2026-01-01T00:00:00Z", "warning")], fail_minimize=True)
    with pytest.raises(GitHubForbiddenError):
        post_or_update_comment(api, owner="o", repo="r", pr_number=5, body="warning", bot_login=BOT)
    assert _mutations(api) == []
