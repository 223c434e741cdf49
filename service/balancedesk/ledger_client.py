"""
Google Sheets ledger accessor.

The "Profiles" tab is the ledger-of-record for balance and login number:

    A personal number | B name | C email | D password | E phone | F balance | G login number

Every public method swallows transport errors and returns None / False.
Callers must read that as "ledger unreachable", never as zero or empty.
The google-api-python-client calls are blocking, so they run in worker
threads via asyncio.to_thread.
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build

from balancedesk.config import Settings, get_settings
from balancedesk.utils.amounts import parse_amount

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
PROFILES_RANGE = "Profiles!A2:G10000"
LOGIN_COLUMN_RANGE = "Profiles!G2:G10000"
APPEND_RANGE = "Profiles!A2:G2"
FIRST_DATA_ROW = 2


@dataclass
class LedgerRow:
    """One row of the Profiles tab."""
    personal_number: str
    name: str = ""
    email: str = ""
    password: str = ""
    phone: str = ""
    balance: Decimal = Decimal("0")
    login_number: Optional[int] = None
    row_index: Optional[int] = None  # 1-based sheet row, None if not yet written

    @classmethod
    def from_values(cls, values: list, row_index: int) -> "LedgerRow":
        cells = [str(v) if v is not None else "" for v in values] + [""] * 7
        balance = parse_amount(cells[5])
        if balance is None:
            if cells[5].strip():
                logger.warning(f"Unparseable balance {cells[5]!r} in ledger row {row_index}")
            balance = Decimal("0")
        return cls(
            personal_number=cells[0],
            name=cells[1],
            email=cells[2],
            password=cells[3],
            phone=cells[4],
            balance=balance,
            login_number=_parse_login_number(cells[6]),
            row_index=row_index,
        )

    def to_values(self) -> list[str]:
        return [
            self.personal_number,
            self.name,
            self.email,
            self.password,
            self.phone,
            str(self.balance),
            str(self.login_number) if self.login_number is not None else "",
        ]


def _parse_login_number(cell: str) -> Optional[int]:
    cell = cell.strip()
    if not cell:
        return None
    try:
        return int(Decimal(cell))
    except (ArithmeticError, ValueError):
        return None


class LedgerClient:
    """Async facade over the Sheets v4 values API."""

    def __init__(self, spreadsheet_id: str, service=None):
        self.spreadsheet_id = spreadsheet_id
        self._service = service

    @property
    def ready(self) -> bool:
        return self._service is not None and bool(self.spreadsheet_id)

    def initialize(self, key_json: str = "", cred_path: str = "") -> bool:
        """Build the Sheets service from service-account credentials."""
        if not key_json and cred_path and os.path.exists(cred_path):
            with open(cred_path, encoding="utf-8") as f:
                key_json = f.read()

        if not key_json:
            logger.warning("Google Sheets credentials not provided (GOOGLE_SA_KEY_JSON or GOOGLE_SA_CRED_PATH). Ledger disabled.")
            return False

        try:
            info = json.loads(key_json)
            creds = service_account.Credentials.from_service_account_info(info, scopes=[SHEETS_SCOPE])
            self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
            logger.info("Google Sheets ledger initialized")
            return True
        except Exception as e:
            logger.warning(f"Ledger initialization failed: {e}")
            self._service = None
            return False

    # ------------------------------------------------------------------
    # blocking primitives
    # ------------------------------------------------------------------

    def _values(self):
        return self._service.spreadsheets().values()

    def _read(self, range_: str) -> list[list]:
        resp = self._values().get(spreadsheetId=self.spreadsheet_id, range=range_).execute()
        return resp.get("values", []) or []

    def _write(self, range_: str, values: list[list[str]]) -> None:
        self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=range_,
            valueInputOption="RAW",
            body={"values": values},
        ).execute()

    def _append(self, values: list[str]) -> None:
        self._values().append(
            spreadsheetId=self.spreadsheet_id,
            range=APPEND_RANGE,
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": [values]},
        ).execute()

    def _find_row(self, personal: str) -> Optional[LedgerRow]:
        for i, values in enumerate(self._read(PROFILES_RANGE)):
            if values and str(values[0]) == personal:
                return LedgerRow.from_values(values, FIRST_DATA_ROW + i)
        return None

    def _upsert(self, row: LedgerRow) -> None:
        existing = self._find_row(row.personal_number)
        if existing:
            self._write(f"Profiles!A{existing.row_index}:G{existing.row_index}", [row.to_values()])
        else:
            self._append(row.to_values())

    def _update_balance(self, personal: str, value: Decimal) -> None:
        existing = self._find_row(personal)
        if existing:
            self._write(f"Profiles!F{existing.row_index}", [[str(value)]])
        else:
            self._append(LedgerRow(personal_number=personal, balance=value).to_values())

    def _assign_login_number(self, personal: str) -> int:
        existing = self._find_row(personal)
        if existing and existing.login_number:
            return existing.login_number

        taken = [_parse_login_number(str(r[0])) for r in self._read(LOGIN_COLUMN_RANGE) if r]
        next_number = max([n for n in taken if n is not None], default=0) + 1

        if existing:
            self._write(f"Profiles!G{existing.row_index}", [[str(next_number)]])
        else:
            self._append(LedgerRow(personal_number=personal, login_number=next_number).to_values())
        return next_number

    # ------------------------------------------------------------------
    # public async API
    # ------------------------------------------------------------------

    async def get_row(self, personal: str) -> Optional[LedgerRow]:
        if not self.ready:
            return None
        try:
            return await asyncio.to_thread(self._find_row, str(personal))
        except Exception as e:
            logger.warning(f"Ledger get_row failed for {personal}: {e}")
            return None

    async def upsert_row(self, row: LedgerRow) -> bool:
        if not self.ready:
            return False
        try:
            await asyncio.to_thread(self._upsert, row)
            return True
        except Exception as e:
            logger.warning(f"Ledger upsert_row failed for {row.personal_number}: {e}")
            return False

    async def update_balance(self, personal: str, value: Decimal) -> bool:
        if not self.ready:
            return False
        try:
            await asyncio.to_thread(self._update_balance, str(personal), value)
            return True
        except Exception as e:
            logger.warning(f"Ledger update_balance failed for {personal}: {e}")
            return False

    async def assign_next_login_number(self, personal: str) -> Optional[int]:
        """Existing login number for the row, or max(column G) + 1 written back."""
        if not self.ready:
            return None
        try:
            return await asyncio.to_thread(self._assign_login_number, str(personal))
        except Exception as e:
            logger.warning(f"Ledger login number assignment failed for {personal}: {e}")
            return None


async def run_reconnect_loop(ledger: LedgerClient, settings: Settings) -> None:
    """Retry initialization on a fixed interval while the client is absent."""
    while True:
        await asyncio.sleep(settings.ledger_retry_seconds)
        if ledger.ready or not settings.sheet_id:
            continue
        logger.info("Attempting to re-init Google Sheets ledger...")
        await asyncio.to_thread(
            ledger.initialize, settings.google_sa_key_json, settings.google_sa_cred_path
        )


# Global instance
_ledger: Optional[LedgerClient] = None


def get_ledger() -> LedgerClient:
    """Get or create the ledger client singleton."""
    global _ledger
    if _ledger is None:
        settings = get_settings()
        _ledger = LedgerClient(settings.sheet_id)
    return _ledger
