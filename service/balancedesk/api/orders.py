"""
Orders API.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from balancedesk.api.errors import DeskRequest, error_response
from balancedesk.services.orders import OrderService, get_order_service

router = APIRouter(prefix="/api", tags=["orders"])


class OrderRequest(DeskRequest):
    personal: Optional[str] = None
    phone: str = ""
    type: Optional[str] = None
    item: Optional[str] = None
    id_field: str = Field("", alias="idField")
    file_link: str = Field("", alias="fileLink")
    cash_method: str = Field("", alias="cashMethod")
    paid_with_balance: bool = Field(False, alias="paidWithBalance")
    paid_amount: Optional[str] = Field(None, alias="paidAmount")


@router.post("/orders")
async def create_order(request: OrderRequest, orders: OrderService = Depends(get_order_service)):
    """
    Submit an order to the orders desk.

    With paidWithBalance the amount is checked against the ledger balance
    before sending and debited only after the desk message went out.
    """
    result = await orders.submit(
        request.personal,
        request.type,
        request.item,
        phone=request.phone,
        id_field=request.id_field,
        file_link=request.file_link,
        cash_method=request.cash_method,
        paid_with_balance=request.paid_with_balance,
        paid_amount=request.paid_amount,
    )
    if not result.ok:
        raise error_response(result.error, result.details)
    return {"ok": True, "order": result.order, "profile": result.profile}
