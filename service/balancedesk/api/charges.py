"""
Balance charge (top-up) API.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from balancedesk.api.errors import DeskRequest, error_response
from balancedesk.services.charges import ChargeService, get_charge_service

router = APIRouter(prefix="/api", tags=["charges"])


class ChargeRequest(DeskRequest):
    personal: Optional[str] = None
    phone: str = ""
    amount: Optional[str] = None
    method: str = ""
    file_link: str = Field("", alias="fileLink")


@router.post("/charge")
async def create_charge(request: ChargeRequest, charges: ChargeService = Depends(get_charge_service)):
    result = await charges.submit(
        request.personal,
        request.amount,
        phone=request.phone,
        method=request.method,
        file_link=request.file_link,
    )
    if not result.ok:
        raise error_response(result.error)
    return {"ok": True, "charge": result.charge}
