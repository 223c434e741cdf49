"""
Persisted entities for the local cache document.

Everything the service knows lives in one CacheDocument that is loaded once,
mutated in place and written back whole (see store.py).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


PENDING_STATUS = "قيد المراجعة"
GUEST_NAME = "ضيف"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ClientModel(BaseModel):
    """
    Entity shown to the web client.

    The cache file keeps snake_case field names; API responses serialize by
    alias, so the client sees camelCase (personalNumber, loginNumber, canEdit).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Profile(ClientModel):
    personal_number: str
    name: str = ""
    email: str = ""
    phone: str = ""
    # Stored and echoed in plaintext. Known defect kept for client compatibility.
    password: str = ""
    balance: Decimal = Decimal("0")
    login_number: Optional[int] = None
    can_edit: bool = False
    last_login: Optional[str] = None


class Order(ClientModel):
    id: int
    personal_number: str
    phone: str = ""
    type: str
    item: str
    id_field: str = ""
    file_link: str = ""
    cash_method: str = ""
    status: str = PENDING_STATUS
    replied: bool = False
    telegram_message_id: Optional[int] = None
    paid_with_balance: bool = False
    paid_amount: Decimal = Decimal("0")
    created_at: str = Field(default_factory=utc_now_iso)


class Charge(ClientModel):
    id: int
    personal_number: str
    phone: str = ""
    amount: str
    method: str = ""
    file_link: str = ""
    status: str = PENDING_STATUS
    replied: bool = False
    telegram_message_id: Optional[int] = None
    credited_amount: Optional[Decimal] = None  # Set once the ledger accepted a credit
    created_at: str = Field(default_factory=utc_now_iso)


class Notification(ClientModel):
    id: str
    personal: str
    text: str
    read: bool = False
    created_at: str = Field(default_factory=utc_now_iso)


class Offer(ClientModel):
    id: int
    text: str
    created_at: str = Field(default_factory=utc_now_iso)


class CacheDocument(BaseModel):
    profiles: list[Profile] = Field(default_factory=list)
    orders: list[Order] = Field(default_factory=list)  # Newest first
    charges: list[Charge] = Field(default_factory=list)  # Newest first
    offers: list[Offer] = Field(default_factory=list)
    notifications: list[Notification] = Field(default_factory=list)
    profile_edit_requests: dict[str, str] = Field(default_factory=dict)  # message_id -> personal
    blocked: list[str] = Field(default_factory=list)
    tg_offsets: dict[str, int] = Field(default_factory=dict)  # bot key -> last update_id
