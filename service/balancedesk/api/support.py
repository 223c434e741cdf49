"""
Help desk and offer acknowledgement endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from balancedesk.api.errors import DeskRequest, error_response
from balancedesk.services.support import SupportService, get_support_service

router = APIRouter(prefix="/api", tags=["support"])


class HelpRequest(DeskRequest):
    personal: Optional[str] = None
    issue: str = ""
    desc: str = ""
    file_link: str = Field("", alias="fileLink")
    name: str = ""
    email: str = ""
    phone: str = ""


class OfferAckRequest(DeskRequest):
    personal: Optional[str] = None
    offer_id: Optional[str] = Field(None, alias="offerId")


@router.post("/help")
async def send_help(request: HelpRequest, support: SupportService = Depends(get_support_service)):
    if not request.personal:
        raise error_response("missing_personal")
    result = await support.send_help_request(
        request.personal,
        request.issue,
        desc=request.desc,
        file_link=request.file_link,
        name=request.name,
        email=request.email,
        phone=request.phone,
    )
    if not result.delivered:
        return {"ok": False, "error": result.error}
    return {"ok": True, "message_id": result.message_id}


@router.post("/offer/ack")
async def acknowledge_offer(request: OfferAckRequest, support: SupportService = Depends(get_support_service)):
    if not request.personal or not request.offer_id:
        raise error_response("missing_fields")
    result = await support.acknowledge_offer(request.personal, request.offer_id)
    if not result.delivered:
        return {"ok": False, "error": result.error}
    return {"ok": True}
