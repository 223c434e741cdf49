"""
Mapping from service error codes to HTTP responses.

Services return typed results with an `error` code; only the API layer turns
them into HTTPException.
"""

from typing import Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict

ERROR_STATUS = {
    "missing_fields": status.HTTP_400_BAD_REQUEST,
    "missing_personal": status.HTTP_400_BAD_REQUEST,
    "missing_personal_number": status.HTTP_400_BAD_REQUEST,
    "invalid_paid_amount": status.HTTP_400_BAD_REQUEST,
    "invalid_password": status.HTTP_401_UNAUTHORIZED,
    "insufficient_balance": status.HTTP_402_PAYMENT_REQUIRED,
    "blocked": status.HTTP_403_FORBIDDEN,
    "edit_not_allowed": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "sheet_update_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "telegram_send_failed": status.HTTP_504_GATEWAY_TIMEOUT,
}


class DeskRequest(BaseModel):
    """Base for request bodies: web clients send ids as numbers or strings."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


def error_response(code: str, details: Optional[str] = None) -> HTTPException:
    detail = {"error": code}
    if details:
        detail["details"] = details
    return HTTPException(
        status_code=ERROR_STATUS.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=detail,
    )
