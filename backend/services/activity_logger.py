"""
Service de journalisation des activités
"""

import logging

from pymongo.errors import PyMongoError

from config import new_id, now_iso

logger = logging.getLogger("activity_logger")


async def log_activity(
    db,
    user: dict,
    action: str,
    entity_type: str,
    entity_id: str = None,
    details: dict = None,
    ip_address: str = None
):
    """
    Enregistre une activité dans le journal

    Actions: login, logout, magic_link_issued, magic_link_consumed,
             status_change, delete
    Entity types: user, lead, screenshot, login_token
    """
    log_entry = {
        "id": new_id(),
        "user_id": (user or {}).get("id", "system"),
        "user_email": (user or {}).get("email", "system"),
        "user_name": (user or {}).get("name", "Système"),
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "details": details or {},
        "ip_address": ip_address,
        "created_at": now_iso()
    }

    # audit failures are logged, not raised
    try:
        await db.activity_logs.insert_one(dict(log_entry))
    except PyMongoError as e:
        logger.error(f"[ACTIVITY] insert failed for {action}/{entity_type}: {e}")
    return log_entry
