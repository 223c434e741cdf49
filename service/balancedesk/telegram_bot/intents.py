"""
Lexical intent classification for operator replies.

Rules are data: an ordered table of (intent, pattern) pairs evaluated top to
bottom, with LITERAL as the mandatory fallback. New lexemes go in the table,
not in the router.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from balancedesk.utils.amounts import parse_amount


class Intent(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    LITERAL = "literal"


@dataclass(frozen=True)
class IntentRule:
    intent: Intent
    pattern: re.Pattern


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(Intent.ACCEPT, re.compile(r"^(تم|مقبول|accept)", re.IGNORECASE)),
    IntentRule(Intent.REJECT, re.compile(r"^(رفض|مرفوض|reject)", re.IGNORECASE)),
)

# Canonical status text per record kind
ORDER_STATUSES = {
    Intent.ACCEPT: "تم قبول طلبك",
    Intent.REJECT: "تم رفض طلبك",
}
CHARGE_STATUSES = {
    Intent.ACCEPT: "تم شحن الرصيد",
    Intent.REJECT: "تم رفض الطلب",
}

CREDIT_AMOUNT_PATTERN = re.compile(r"الرصيد[:\s]*([0-9.,]+)", re.IGNORECASE)
CREDIT_PERSONAL_PATTERN = re.compile(r"الرقم الشخصي[:\s\-\(\)]*([0-9]+)", re.IGNORECASE)
DIRECT_PERSONAL_PATTERN = re.compile(r"الرقم\s*الشخصي[:\s\-\(\)]*([0-9]+)", re.IGNORECASE)
OFFER_PATTERN = re.compile(r"^(عرض|هدية)", re.IGNORECASE)
EDIT_APPROVAL_PATTERN = re.compile(r"^تم$", re.IGNORECASE)


@dataclass(frozen=True)
class CreditInstruction:
    """'Credit <amount> to <personal>' extracted from a charge reply."""
    amount: Decimal
    personal: str


def classify(text: str) -> Intent:
    for rule in INTENT_RULES:
        if rule.pattern.search(text):
            return rule.intent
    return Intent.LITERAL


def resolve_status(text: str, statuses: dict[Intent, str]) -> str:
    """Canonical status for ACCEPT/REJECT, the reply text itself otherwise."""
    return statuses.get(classify(text), text)


def parse_credit_instruction(text: str) -> Optional[CreditInstruction]:
    amount_match = CREDIT_AMOUNT_PATTERN.search(text)
    personal_match = CREDIT_PERSONAL_PATTERN.search(text)
    if not amount_match or not personal_match:
        return None

    amount = parse_amount(amount_match.group(1))
    if amount is None:
        return None
    return CreditInstruction(amount=amount, personal=personal_match.group(1))


def parse_direct_notification(text: str) -> Optional[tuple[str, str]]:
    """
    Split "<message> الرقم الشخصي: <id>" into (id, message).

    The matched fragment is stripped; the full text is kept if nothing remains.
    """
    match = DIRECT_PERSONAL_PATTERN.search(text)
    if not match:
        return None
    cleaned = text.replace(match.group(0), "", 1).strip()
    return match.group(1), cleaned or text


def is_offer(text: str) -> bool:
    return bool(OFFER_PATTERN.search(text))


def is_edit_approval(text: str) -> bool:
    return bool(EDIT_APPROVAL_PATTERN.search(text.strip()))
