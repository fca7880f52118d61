"""
mediabatch Notifications

Optional webhook notifications for batch events.
Supports Discord, Slack, and generic JSON webhooks.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

import requests

from .batch import BatchReport, FileStatus

logger = logging.getLogger(__name__)

# Per-file error lines included in a summary before truncating
MAX_LISTED_FAILURES = 10


class NotificationType(Enum):
    """Type of notification event."""
    BATCH_COMPLETE = "batch_complete"
    BATCH_PARTIAL = "batch_partial"
    BATCH_FAILED = "batch_failed"


@dataclass
class NotificationPayload:
    """Payload for a notification."""
    type: NotificationType
    title: str
    message: str
    folder: Optional[Path] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


# Host fragment -> service name; anything else is posted as plain JSON
WEBHOOK_SERVICES = (
    ("discord.com/api/webhooks", "discord"),
    ("hooks.slack.com", "slack"),
)

# Status codes each service answers a delivered message with
ACCEPTED_STATUS = {
    "discord": (200, 204),
    "slack": (200,),
    "generic": (200, 201, 204),
}

EVENT_STYLE = {
    NotificationType.BATCH_COMPLETE: ("✅", 0x00FF00),
    NotificationType.BATCH_PARTIAL: ("⚠️", 0xFFA500),
    NotificationType.BATCH_FAILED: ("❌", 0xFF0000),
}

# Longest error excerpt embedded in chat messages
ERROR_EXCERPT = 1000


def detect_webhook_type(url: str) -> str:
    lowered = url.lower()
    for fragment, service in WEBHOOK_SERVICES:
        if fragment in lowered:
            return service
    return "generic"


def discord_body(payload: NotificationPayload) -> dict:
    emoji, color = EVENT_STYLE[payload.type]
    fields = []
    if payload.folder:
        fields.append({"name": "Folder", "value": f"`{payload.folder}`", "inline": False})
    if payload.error:
        fields.append({
            "name": "Errors",
            "value": f"```{payload.error[:ERROR_EXCERPT]}```",
            "inline": False,
        })

    embed = {
        "title": f"{emoji} {payload.title}",
        "description": payload.message,
        "color": color,
        "timestamp": payload.timestamp.isoformat(),
        "footer": {"text": "mediabatch"},
    }
    if fields:
        embed["fields"] = fields
    return {"embeds": [embed]}


def slack_body(payload: NotificationPayload) -> dict:
    emoji, _ = EVENT_STYLE[payload.type]
    blocks = [
        {"type": "header", "text": {"type": "plain_text", "text": f"{emoji} {payload.title}"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": payload.message}},
    ]
    if payload.folder:
        blocks.append({
            "type": "section",
            "fields": [{"type": "mrkdwn", "text": f"*Folder:*\n`{payload.folder}`"}],
        })
    if payload.error:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Errors:*\n```{payload.error[:ERROR_EXCERPT]}```"},
        })
    return {"blocks": blocks}


def generic_body(payload: NotificationPayload) -> dict:
    body = {
        "event": payload.type.value,
        "title": payload.title,
        "message": payload.message,
        "timestamp": payload.timestamp.isoformat(),
        "source": "mediabatch",
    }
    if payload.folder:
        body["folder"] = str(payload.folder)
    if payload.error:
        body["error"] = payload.error
    return body


BODY_BUILDERS: Dict[str, Callable[[NotificationPayload], dict]] = {
    "discord": discord_body,
    "slack": slack_body,
    "generic": generic_body,
}


class Notifier:
    """
    Posts batch outcomes to a webhook.

    The service is picked from the URL (Discord, Slack, or plain JSON for
    anything else) and decides both the body shape and which status codes
    count as delivered.
    """

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url
        self.webhook_type = detect_webhook_type(webhook_url)
        logger.info(f"Notifications enabled ({self.webhook_type})")

    def send(self, payload: NotificationPayload) -> bool:
        """Send a notification. Never raises."""
        body = BODY_BUILDERS[self.webhook_type](payload)
        try:
            response = requests.post(self.webhook_url, json=body, timeout=10)
        except requests.RequestException as e:
            logger.error(f"Failed to send notification: {e}")
            return False

        delivered = response.status_code in ACCEPTED_STATUS[self.webhook_type]
        if not delivered:
            logger.warning(f"Webhook answered {response.status_code} for {payload.type.value}")
        return delivered

    # -------------------------------------------------------------------------
    # Convenience methods
    # -------------------------------------------------------------------------

    def notify_batch_complete(self, report: BatchReport) -> bool:
        """Send the end-of-run summary."""
        failures: List[str] = [
            f"{r.media.name}: {r.error}"
            for r in report.results
            if r.status is not FileStatus.COMPLETED
        ]
        error = None
        if failures:
            error = "\n".join(failures[:MAX_LISTED_FAILURES])
            if len(failures) > MAX_LISTED_FAILURES:
                error += f"\n... and {len(failures) - MAX_LISTED_FAILURES} more"

        return self.send(NotificationPayload(
            type=NotificationType.BATCH_PARTIAL if failures else NotificationType.BATCH_COMPLETE,
            title="Batch Complete",
            message=f"**{report.mode.value}**: {report.summary()}",
            folder=report.folder,
            error=error
        ))

    def notify_batch_failed(self, folder: Path, error: str) -> bool:
        """Send a notice that a run could not start or crashed."""
        return self.send(NotificationPayload(
            type=NotificationType.BATCH_FAILED,
            title="Batch Failed",
            message="The batch run did not complete.",
            folder=folder,
            error=error
        ))
