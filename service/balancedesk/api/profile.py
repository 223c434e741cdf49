"""
Profile API.

Edits are gated: the user asks for permission, an operator replies "تم" on
the login-report desk, and the next submitted edit consumes it.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from balancedesk.api.errors import DeskRequest, error_response
from balancedesk.services.profiles import ProfileService, get_profile_service
from balancedesk.store import CacheStore, get_store

router = APIRouter(prefix="/api/profile", tags=["profile"])


class EditRequest(DeskRequest):
    personal: Optional[str] = None


class SubmitEditRequest(DeskRequest):
    personal: Optional[str] = None
    name: str = ""
    email: str = ""
    phone: str = ""
    password: str = ""


@router.get("/{personal}")
async def get_profile(personal: str, store: CacheStore = Depends(get_store)):
    profile = store.find_profile(personal)
    if profile is None:
        raise error_response("not_found")
    return {"ok": True, "profile": profile}


@router.post("/request-edit")
async def request_edit(request: EditRequest, profiles: ProfileService = Depends(get_profile_service)):
    if not request.personal:
        raise error_response("missing_personal")
    result = await profiles.request_edit(request.personal)
    if not result.ok:
        return {"ok": False}
    return {"ok": True, "msgId": result.message_id}


@router.post("/submit-edit")
async def submit_edit(request: SubmitEditRequest, profiles: ProfileService = Depends(get_profile_service)):
    result = profiles.submit_edit(
        request.personal,
        name=request.name,
        email=request.email,
        phone=request.phone,
        password=request.password,
    )
    if not result.ok:
        raise error_response(result.error)
    return {"ok": True, "profile": result.profile}
