"""
Local cache store.

Contract: load the JSON document once at startup, mutate it in place, and
persist the whole snapshot after every change. There are no partial writes;
a save replaces the file atomically (temp file + rename).
"""

import asyncio
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from balancedesk.config import get_settings
from balancedesk.models import CacheDocument, Charge, GUEST_NAME, Order, Profile

logger = logging.getLogger(__name__)


class CacheStore:
    """Process-wide owner of the cache document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.doc = CacheDocument()
        self._last_record_id = 0
        self._profile_locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # load / save
    # ------------------------------------------------------------------

    def load(self) -> CacheDocument:
        """Read the document from disk, creating an empty one if absent."""
        if not self.path.exists():
            self.doc = CacheDocument()
            self.save(self.doc)
            return self.doc

        try:
            raw = self.path.read_text(encoding="utf-8")
            self.doc = CacheDocument.model_validate_json(raw or "{}")
        except (UnicodeDecodeError, ValidationError) as e:
            # Keep the unreadable file aside instead of overwriting it on the next save
            backup = self.path.with_suffix(f".corrupt-{int(time.time())}")
            self.path.rename(backup)
            logger.error(f"Cache file unreadable, moved to {backup}: {e}")
            self.doc = CacheDocument()
        return self.doc

    def save(self, doc: CacheDocument) -> bool:
        """Replace the file with a full snapshot of `doc`."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cache-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(doc.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
            return True
        except OSError as e:
            logger.error(f"Failed to save cache document to {self.path}: {e}", exc_info=True)
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return False

    def persist(self) -> bool:
        return self.save(self.doc)

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------

    def find_profile(self, personal: str | int | None) -> Optional[Profile]:
        if personal is None:
            return None
        key = str(personal)
        for p in self.doc.profiles:
            if p.personal_number == key:
                return p
        return None

    def find_profile_by_email(self, email: str) -> Optional[Profile]:
        wanted = email.lower()
        for p in self.doc.profiles:
            if p.email and p.email.lower() == wanted:
                return p
        return None

    def ensure_profile(self, personal: str | int) -> Profile:
        """Return the profile, creating a guest profile if it does not exist."""
        profile = self.find_profile(personal)
        if profile is None:
            profile = Profile(personal_number=str(personal), name=GUEST_NAME)
            self.doc.profiles.append(profile)
            self.persist()
        return profile

    def find_order_by_message(self, message_id: int) -> Optional[Order]:
        for o in self.doc.orders:
            if o.telegram_message_id is not None and o.telegram_message_id == message_id:
                return o
        return None

    def find_charge_by_message(self, message_id: int) -> Optional[Charge]:
        for c in self.doc.charges:
            if c.telegram_message_id is not None and c.telegram_message_id == message_id:
                return c
        return None

    def is_blocked(self, personal: str | int) -> bool:
        return str(personal) in self.doc.blocked

    # ------------------------------------------------------------------
    # ids and locks
    # ------------------------------------------------------------------

    def next_record_id(self) -> int:
        """Millisecond timestamp id, strictly increasing within the process."""
        candidate = int(time.time() * 1000)
        if candidate <= self._last_record_id:
            candidate = self._last_record_id + 1
        self._last_record_id = candidate
        return candidate

    def profile_lock(self, personal: str) -> asyncio.Lock:
        """Lock serialising balance read-modify-write for one profile."""
        lock = self._profile_locks.get(personal)
        if lock is None:
            lock = asyncio.Lock()
            self._profile_locks[personal] = lock
        return lock


# Global instance
_store: Optional[CacheStore] = None


def get_store() -> CacheStore:
    """Get or create the cache store singleton (loaded on first use)."""
    global _store
    if _store is None:
        _store = CacheStore(get_settings().data_file)
        _store.load()
    return _store
