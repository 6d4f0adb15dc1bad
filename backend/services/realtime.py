"""
Lead Suite - Realtime & push notifications

Fire-and-forget: scheduled as BackgroundTasks after the response is built.
Failures are logged, never raised into the request.

Channels:
    companies.{companyId}.screenshots
    companies.{companyId}.screenshots.{workingDay}
Events: "uploaded", "screenshot.reviewed"
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from config import ABLY_API_KEY, ABLY_REST_URL, PUSH_BROADCAST_SECRET, SERVER_API_URL

logger = logging.getLogger("realtime")

EVENT_UPLOADED = "uploaded"
EVENT_REVIEWED = "screenshot.reviewed"

PUBLISH_TIMEOUT_SECONDS = 5.0
PUSH_TIMEOUT_SECONDS = 6.0


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


def screenshot_channels(company_id: Optional[str], working_day: Optional[str]) -> List[str]:
    cid = company_id or "unknown"
    return [
        f"companies.{cid}.screenshots",
        f"companies.{cid}.screenshots.{working_day}",
    ]


def screenshot_event_payload(doc: dict) -> dict:
    return {
        "_id": _str_or_none(doc.get("id")),
        "lead": _str_or_none(doc.get("lead")),
        "url": doc.get("url"),
        "productId": _str_or_none(doc.get("productId")),
        "productName": doc.get("productName"),
        "productMonth": doc.get("productMonth"),
        "workingDay": doc.get("workingDay"),
        "uploadedAt": doc.get("uploadedAt"),
        "uploadedBy": _str_or_none(doc.get("uploadedBy")),
        "companyId": _str_or_none(doc.get("companyId")),
        "reviewed": bool(doc.get("reviewed")),
    }


def push_notification_payload(doc: dict) -> dict:
    return {
        "companyId": _str_or_none(doc.get("companyId")),
        "title": "New Signup Screenshot",
        "body": doc.get("productName"),
        "data": {
            "type": "screenshot.uploaded",
            "productName": doc.get("productName"),
            "workingDay": doc.get("workingDay"),
            "screenshotId": _str_or_none(doc.get("id")),
            "tag": f"screenshot-{doc.get('id')}",
            "url": "/dashboard/signup-summary",
        },
    }


async def publish_screenshot_event(name: str, doc: dict):
    """Publish `name` on the company channel and the company/day channel."""
    if not ABLY_API_KEY:
        logger.warning(f"[REALTIME] Publish skipped ({name}): no ABLY_API_KEY")
        return

    payload = screenshot_event_payload(doc)
    key_name, _, key_secret = ABLY_API_KEY.partition(":")

    async with httpx.AsyncClient(timeout=PUBLISH_TIMEOUT_SECONDS, auth=(key_name, key_secret)) as client:
        for channel in screenshot_channels(payload["companyId"], payload["workingDay"]):
            try:
                resp = await client.post(
                    f"{ABLY_REST_URL}/channels/{quote(channel, safe='')}/messages",
                    json={"name": name, "data": payload},
                )
                if resp.status_code >= 400:
                    logger.warning(f"[REALTIME] {channel} {name} -> {resp.status_code}")
            except httpx.HTTPError as e:
                logger.warning(f"[REALTIME] {channel} {name} failed: {e}")


async def broadcast_screenshot_push(doc: dict):
    if not PUSH_BROADCAST_SECRET:
        return

    try:
        async with httpx.AsyncClient(timeout=PUSH_TIMEOUT_SECONDS) as client:
            resp = await client.post(
                f"{SERVER_API_URL}/api/push/broadcast/screenshot",
                json=push_notification_payload(doc),
                headers={
                    "Content-Type": "application/json",
                    "x-push-secret": PUSH_BROADCAST_SECRET,
                },
            )
            if resp.status_code >= 400:
                logger.warning(f"[REALTIME] Push broadcast -> {resp.status_code}")
    except httpx.HTTPError as e:
        logger.warning(f"[REALTIME] Push broadcast failed: {e}")
