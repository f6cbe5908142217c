"""Lightweight helper for recording activity log entries.

Usage:
    log_activity(
        store, account, action="submitted", entity_type="application",
        entity_id=application.id, entity_code=application.reference_number,
        summary="Submitted Birth Certificate application",
    )
"""

from __future__ import annotations

import logging

from portal.store import ActivityEntry, PortalStore, UserAccount

logger = logging.getLogger(__name__)


def log_activity(
    store: PortalStore,
    account: UserAccount,
    *,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    entity_code: str | None = None,
    summary: str | None = None,
    details: dict | None = None,
) -> ActivityEntry:
    """Append an activity log entry to the store."""
    entry = ActivityEntry(
        user_id=account.id,
        user_name=account.profile.full_name,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_code=entity_code,
        summary=summary,
        details=details,
    )
    store.activity.append(entry)
    logger.info(
        f"{entity_type} {action} by {account.id}",
        extra={"entity_id": entity_id, "entity_code": entity_code},
    )
    return entry
