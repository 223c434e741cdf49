"""
User-facing notifications and offers.

Notifications are an append-only fan-out of order, charge, profile-edit and
direct operator messages. Callers persist the store after appending.
"""

from typing import Optional

from balancedesk.models import Notification, Offer
from balancedesk.store import CacheStore

OFFER_AUDIENCE_ID_LENGTH = 7


def append_notification(store: CacheStore, personal: str, text: str, kind: str) -> Notification:
    """Insert a notification at the head of the list (newest first)."""
    notification = Notification(
        id=f"{store.next_record_id()}-{kind}",
        personal=str(personal),
        text=text,
    )
    store.doc.notifications.insert(0, notification)
    return notification


def append_offer(store: CacheStore, text: str) -> Offer:
    offer = Offer(id=store.next_record_id(), text=text)
    store.doc.offers.insert(0, offer)
    return offer


def visible_offers(store: CacheStore, personal: str) -> list[Offer]:
    """Offers are only shown to profiles with a 7-character personal number."""
    if len(str(personal)) != OFFER_AUDIENCE_ID_LENGTH:
        return []
    return list(store.doc.offers)


def notifications_for(store: CacheStore, personal: str) -> Optional[dict]:
    """Everything the notification screen shows for one profile, or None if unknown."""
    profile = store.find_profile(personal)
    if profile is None:
        return None

    key = str(personal)
    return {
        "profile": profile,
        "offers": visible_offers(store, key),
        "orders": [o for o in store.doc.orders if o.personal_number == key],
        "charges": [c for c in store.doc.charges if c.personal_number == key],
        "notifications": [n for n in store.doc.notifications if n.personal == key],
        "can_edit": profile.can_edit,
    }


def mark_read(store: CacheStore, personal: str) -> int:
    # Order/charge `replied` flags are left alone: they mark the resolved state.
    count = 0
    for n in store.doc.notifications:
        if n.personal == str(personal) and not n.read:
            n.read = True
            count += 1
    store.persist()
    return count


def clear(store: CacheStore, personal: str) -> int:
    before = len(store.doc.notifications)
    store.doc.notifications = [n for n in store.doc.notifications if n.personal != str(personal)]
    store.persist()
    return before - len(store.doc.notifications)
