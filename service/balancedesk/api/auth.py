"""
Register / login endpoints.

Login creates unknown users on the spot, syncs balance and login number from
the ledger, and echoes the stored password back (legacy client contract).
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from balancedesk.api.errors import DeskRequest, error_response
from balancedesk.services.profiles import ProfileService, get_profile_service

router = APIRouter(prefix="/api", tags=["auth"])


class RegisterRequest(DeskRequest):
    personal_number: Optional[str] = Field(None, alias="personalNumber")
    personal: Optional[str] = None
    name: str = ""
    email: str = ""
    password: str = ""
    phone: str = ""


class LoginRequest(DeskRequest):
    personal_number: Optional[str] = Field(None, alias="personalNumber")
    personal: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    name: str = ""
    phone: str = ""


@router.post("/register")
async def register(request: RegisterRequest, profiles: ProfileService = Depends(get_profile_service)):
    result = await profiles.register(
        request.personal_number or request.personal,
        name=request.name,
        email=request.email,
        password=request.password,
        phone=request.phone,
    )
    if not result.ok:
        raise error_response(result.error)
    return {"ok": True, "profile": result.profile}


@router.post("/login")
async def login(request: LoginRequest, profiles: ProfileService = Depends(get_profile_service)):
    result = await profiles.login(
        request.personal_number or request.personal,
        email=request.email,
        password=request.password,
        name=request.name,
        phone=request.phone,
    )
    if not result.ok:
        raise error_response(result.error)

    p = result.profile
    return {
        "ok": True,
        "profile": {
            "personalNumber": p.personal_number,
            "loginNumber": p.login_number,
            "balance": p.balance,
            "name": p.name,
            "email": p.email,
            "phone": p.phone,
            "password": p.password,
        },
    }
