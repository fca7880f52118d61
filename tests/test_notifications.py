from datetime import datetime
from pathlib import Path

import pytest
import requests

from mediabatch.batch import BatchReport, FileResult, FileStatus, MediaFamily, MediaFile
from mediabatch.errors import ExternalToolFailure
from mediabatch.jobs import OperationMode
from mediabatch.notifications import (
    MAX_LISTED_FAILURES,
    NotificationPayload,
    NotificationType,
    Notifier,
    discord_body,
    generic_body,
    slack_body,
)


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def posts(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append({"url": url, "json": json, "timeout": timeout})
        return FakeResponse(204)

    monkeypatch.setattr(requests, "post", fake_post)
    return calls


def make_report(failed=0, succeeded=1):
    media = MediaFile(path=Path("/v/a.mp4"), family=MediaFamily.VIDEO)
    results = [FileResult(media=media, status=FileStatus.COMPLETED) for _ in range(succeeded)]
    results += [
        FileResult(
            media=media,
            status=FileStatus.FAILED,
            error=ExternalToolFailure("compress a.mp4", 1),
        )
        for _ in range(failed)
    ]
    return BatchReport(
        folder=Path("/v"),
        mode=OperationMode.COMPRESS,
        results=results,
        completed_at=datetime.now(),
    )


@pytest.mark.parametrize("url, kind", [
    ("https://discord.com/api/webhooks/1/abc", "discord"),
    ("https://hooks.slack.com/services/T/B/X", "slack"),
    ("https://example.org/hook", "generic"),
])
def test_webhook_type_detection(url, kind):
    assert Notifier(url).webhook_type == kind


def test_generic_success_payload(posts):
    assert Notifier("https://example.org/hook").notify_batch_complete(make_report())

    body = posts[0]["json"]
    assert body["event"] == NotificationType.BATCH_COMPLETE.value
    assert body["folder"] == "/v"
    assert "error" not in body
    assert posts[0]["timeout"] == 10


def test_partial_run_lists_failures(posts):
    Notifier("https://example.org/hook").notify_batch_complete(
        make_report(failed=MAX_LISTED_FAILURES + 2)
    )

    body = posts[0]["json"]
    assert body["event"] == NotificationType.BATCH_PARTIAL.value
    assert body["error"].count("a.mp4:") == MAX_LISTED_FAILURES
    assert body["error"].endswith("... and 2 more")


def test_discord_embed(posts):
    Notifier("https://discord.com/api/webhooks/1/abc").notify_batch_failed(Path("/v"), "No media files")

    embed = posts[0]["json"]["embeds"][0]
    assert embed["title"].endswith("Batch Failed")
    assert [f["name"] for f in embed["fields"]] == ["Folder", "Errors"]


def test_slack_status_code(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda url, json=None, timeout=None: FakeResponse(500))
    assert not Notifier("https://hooks.slack.com/services/T/B/X").notify_batch_failed(Path("/v"), "x")


def test_request_errors_are_swallowed(monkeypatch):
    def refuse(url, json=None, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", refuse)
    assert Notifier("https://example.org/hook").notify_batch_complete(make_report()) is False


@pytest.mark.parametrize("url, status, delivered", [
    ("https://discord.com/api/webhooks/1/abc", 204, True),
    ("https://hooks.slack.com/services/T/B/X", 204, False),
    ("https://example.org/hook", 201, True),
    ("https://example.org/hook", 302, False),
])
def test_delivery_depends_on_service(monkeypatch, url, status, delivered):
    monkeypatch.setattr(requests, "post", lambda url, json=None, timeout=None: FakeResponse(status))
    assert Notifier(url).notify_batch_complete(make_report()) is delivered


def test_bodies_omit_empty_sections():
    payload = NotificationPayload(type=NotificationType.BATCH_COMPLETE, title="Batch Complete", message="ok")

    assert "fields" not in discord_body(payload)["embeds"][0]
    assert len(slack_body(payload)["blocks"]) == 2
    assert "folder" not in generic_body(payload)


def test_chat_bodies_truncate_long_errors():
    payload = NotificationPayload(
        type=NotificationType.BATCH_FAILED, title="Batch Failed", message="x", error="e" * 5000
    )
    errors_field = discord_body(payload)["embeds"][0]["fields"][0]["value"]
    assert errors_field == f"```{'e' * 1000}```"
    assert generic_body(payload)["error"] == "e" * 5000
