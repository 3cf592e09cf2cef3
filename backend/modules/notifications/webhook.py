"""
Optional push hook.

When NOTIFICATION_WEBHOOK_URL is set, every notification.created event is
POSTed there as JSON from a background thread. Polling stays the primary
transport; a failed push is logged and never retried.
"""

import logging
import threading

import httpx

from core import events
from core.config import settings

log = logging.getLogger("upkeep.dispatcher")


def _post(url: str, payload: dict) -> None:
    try:
        resp = httpx.post(url, json=payload, timeout=10)
        if resp.status_code >= 400:
            log.warning(f"Notification webhook returned {resp.status_code}")
    except httpx.HTTPError as e:
        log.warning(f"Notification webhook failed: {e}")


def on_notification_created(event) -> None:
    url = settings.notification_webhook_url
    if not url:
        return
    payload = {
        "event": event.event_type,
        "occurred_at": event.occurred_at.isoformat(),
        **event.data,
    }
    threading.Thread(target=_post, args=(url, payload), daemon=True).start()


def register_subscribers(bus) -> None:
    bus.subscribe(events.NOTIFICATION_CREATED, on_notification_created)
