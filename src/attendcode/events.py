"""Structured audit events for secret issuance and code verification.

Every event goes to the log. When the database pool is open it is
also stored in ``audit_events``. Secret values never appear in events.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from attendcode import db

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


async def emit(
    category: str,
    severity: str,
    event_type: str,
    message: str,
    *,
    scope_id: str | None = None,
    actor_id: str | None = None,
    context: dict[str, Any] | None = None,
) -> int | None:
    """Record an audit event.

    Returns the stored event ID, or None when only logged.
    """
    logger.log(
        _LEVELS.get(severity, logging.INFO),
        "[event] %s/%s scope=%s actor=%s at=%s: %s",
        category, event_type, scope_id, actor_id,
        datetime.now(UTC).isoformat(timespec="seconds"), message,
    )
    if not db.pool_ready():
        return None
    try:
        rows = await db.execute(
            """INSERT INTO audit_events
               (category, severity, event_type, scope_id, actor_id, message, context)
               VALUES (%s, %s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (
                category,
                severity,
                event_type,
                scope_id,
                actor_id,
                message,
                json.dumps(context or {}),
            ),
        )
        return rows[0]["id"] if rows else None
    except Exception:
        logger.warning("Failed to store event: %s/%s", category, event_type, exc_info=True)
        return None

