"""Inspecting and cancelling items in the build queue."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from jkcli.client import JenkinsClient, JenkinsError, status_text

_QUEUE_TREE = "items[id,task[name,url],why,inQueueSince]"
_INTEGER = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class QueueItem:
    """A queued build waiting for an executor."""

    id: int
    why: str = ""
    in_queue_since: int = 0
    task_name: str = ""
    task_url: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QueueItem:
        task = data.get("task") or {}
        if not isinstance(task, dict):
            task = {}
        return cls(
            id=int(data.get("id") or 0),
            why=str(data.get("why") or ""),
            in_queue_since=int(data.get("inQueueSince") or 0),
            task_name=str(task.get("name") or ""),
            task_url=str(task.get("url") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "why": self.why,
            "inQueueSince": self.in_queue_since,
            "task": {"name": self.task_name, "url": self.task_url},
        }


def list_queue(client: JenkinsClient) -> list[QueueItem]:
    """Return the items currently in the build queue."""
    resp = client.request("GET", "/queue/api/json", params={"tree": _QUEUE_TREE})
    if not 200 <= resp.status_code < 300:
        return []
    try:
        payload = resp.json()
    except ValueError as err:
        raise JenkinsError(f"decode queue: {err}") from err
    if not isinstance(payload, dict):
        return []
    return [QueueItem.from_dict(entry) for entry in payload.get("items") or () if isinstance(entry, dict)]


def cancel_queue_item(client: JenkinsClient, item_id: Any) -> str:
    """Cancel a queued item and return a summary."""
    text = str(item_id)
    if not _INTEGER.fullmatch(text):
        raise ValueError(f'invalid queue id "{text}"')
    resp = client.request("POST", "/queue/cancelItem", params={"id": text})
    if resp.status_code >= 300:
        raise JenkinsError(f"cancel failed: {status_text(resp)}")
    return f"Cancelled queue item {text}"


def _format_seconds(total: int) -> str:
    if total == 0:
        return "0s"
    sign = "-" if total < 0 else ""
    hours, rest = divmod(abs(total), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def _waited(since_ms: int, now: datetime) -> str:
    now_ms = round(now.timestamp() * 1000)
    wait_ms = now_ms - since_ms
    seconds = abs(wait_ms) // 1000
    return _format_seconds(-seconds if wait_ms < 0 else seconds)


def format_queue(items: Iterable[QueueItem], now: datetime | None = None) -> str:
    """Render queue items with how long each has been waiting."""
    now = now if now is not None else datetime.now(timezone.utc)
    lines = [
        f"#{item.id}\t{item.task_name}\twaiting {_waited(item.in_queue_since, now)}\t{item.why}\n"
        for item in items
    ]
    return "".join(lines) if lines else "Queue is empty\n"