"""
Notifications API.

Read side of the notification fan-out written by the reply router.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from balancedesk.api.errors import DeskRequest, error_response
from balancedesk.services import notifications
from balancedesk.store import CacheStore, get_store

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class PersonalRequest(DeskRequest):
    personal: Optional[str] = None


@router.get("/{personal}")
async def list_notifications(personal: str, store: CacheStore = Depends(get_store)):
    data = notifications.notifications_for(store, personal)
    if data is None:
        return {"ok": False, "error": "not found"}
    return {
        "ok": True,
        "profile": data["profile"],
        "offers": data["offers"],
        "orders": data["orders"],
        "charges": data["charges"],
        "notifications": data["notifications"],
        "canEdit": data["can_edit"],
    }


@router.post("/mark-read")
@router.post("/mark-read/{personal}")
async def mark_read(
    request: Optional[PersonalRequest] = None,
    personal: Optional[str] = None,
    store: CacheStore = Depends(get_store),
):
    target = (request.personal if request else None) or personal
    if not target:
        raise error_response("missing_personal")
    count = notifications.mark_read(store, target)
    return {"ok": True, "marked": count}


@router.post("/clear")
async def clear_notifications(request: PersonalRequest, store: CacheStore = Depends(get_store)):
    if not request.personal:
        raise error_response("missing_personal")
    removed = notifications.clear(store, request.personal)
    return {"ok": True, "removed": removed}
