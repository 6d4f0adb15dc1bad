"""
Lead Suite - Upstream distribution service (SERVER_API)

Thin proxy client. Identity travels as headers:
    x-session-token, x-company-id, x-user-id, x-role
The upstream status is preserved; the body is normalised to JSON.
"""

import json
import logging
from typing import Optional, Tuple

import httpx
from fastapi.responses import JSONResponse

from config import SERVER_API_URL, UPSTREAM_TIMEOUT_SECONDS
from errors import UpstreamError
from models import SessionClaims

logger = logging.getLogger("upstream")


def upstream_headers(claims: Optional[SessionClaims], company_id: Optional[str] = None) -> dict:
    headers = {"Content-Type": "application/json"}
    if claims is None:
        return headers
    if claims.session_token:
        headers["x-session-token"] = claims.session_token
    cid = company_id or claims.active_company_id
    if cid:
        headers["x-company-id"] = str(cid)
    headers["x-user-id"] = claims.user_id

    membership = claims.membership_for(cid)
    role = membership.role if membership else claims.role
    if role:
        headers["x-role"] = getattr(role, "value", role)
    return headers


def parse_body(content_type: str, text: str):
    """
    JSON bodies are decoded; anything else is wrapped so the caller
    always gets a dict back.
    """
    if "application/json" in (content_type or ""):
        try:
            return json.loads(text) if text else None
        except ValueError:
            return {"error": "Invalid JSON from upstream", "raw": text or None}
    return {"note": text or None}


async def forward(
    method: str,
    path: str,
    *,
    headers: dict,
    params: Optional[dict] = None,
    json_body=None,
) -> Tuple[int, object]:
    url = f"{SERVER_API_URL}{path}"
    try:
        async with httpx.AsyncClient(timeout=UPSTREAM_TIMEOUT_SECONDS) as client:
            resp = await client.request(
                method,
                url,
                headers=headers,
                params={k: v for k, v in (params or {}).items() if v is not None},
                json=json_body,
            )
    except httpx.TimeoutException:
        logger.warning(f"[UPSTREAM] Timeout: {method} {url}")
        raise UpstreamError("Upstream timeout")
    except httpx.ConnectError as e:
        logger.error(f"[UPSTREAM] Cannot connect to {url}: {e}")
        raise UpstreamError(f"Cannot reach server at {SERVER_API_URL}. Is it running?")
    except httpx.HTTPError as e:
        logger.error(f"[UPSTREAM] {method} {url} failed: {e}")
        raise UpstreamError()

    body = parse_body(resp.headers.get("content-type", ""), resp.text)
    if resp.status_code >= 400:
        logger.info(f"[UPSTREAM] {method} {path} -> {resp.status_code}")
    return resp.status_code, body


def as_response(status: int, body) -> JSONResponse:
    """Upstream answer → client, status preserved."""
    return JSONResponse(body if body is not None else {}, status_code=status)
