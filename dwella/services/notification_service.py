"""Contractor/homeowner notifications, written to the outbox in the background.

Delivery is best-effort: a failure here is logged and never reaches the
workflow that asked for the notification.
"""

import json
import logging

from dwella.core.async_tasks import fire_and_forget
from dwella.database import async_session
from dwella.models.notification import Notification

logger = logging.getLogger(__name__)


async def _write_notification(user_id: str, channel: str, subject: str, payload: dict) -> None:
    try:
        async with async_session() as db:
            db.add(Notification(
                user_id=user_id,
                channel=channel,
                subject=subject,
                payload=json.dumps(payload, default=str),
            ))
            await db.commit()
    except Exception:
        logger.exception("Failed to queue notification %r for user %s", subject, user_id)


def notify(user_id: str, subject: str, payload: dict, channel: str = "EMAIL") -> None:
    """Queue a notification without waiting for it."""
    fire_and_forget(
        _write_notification(user_id, channel, subject, payload),
        task_name=f"notify_{payload.get('type', 'generic').lower()}",
    )
