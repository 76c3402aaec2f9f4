"""
JSON Guest Store - Guest Record Persistence
============================================

Keeps every guest in memory, keyed by canonical phone number, and writes
the whole collection to a single pretty-printed JSON file on each change.

File format (one object per guest, insertion order):

    [
      {
        "phone_number": "972501112222",
        "name": "Dana",
        "rsvp_status": "accepted",
        "rsvp_date": "2025-01-02T10:00:00+00:00",
        "invited_date": "2025-01-01T09:00:00+00:00",
        "notes": "vegetarian"
      }
    ]

`rsvp_date` and `notes` are left out when unset.
"""

import json
import logging
import os
import re
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ...domain.errors import GuestNotFoundError, PersistenceError
from ...domain.models import GuestRecord, RSVPStatus
from ..clock import utc_now

logger = logging.getLogger(__name__)

# Zero timestamp that older releases of the bot wrote for unset dates
_GO_ZERO_TIME_PREFIX = "0001-01-01T00:00:00"
_FRACTION_RE = re.compile(r"\.(\d+)")


class _ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class GuestStore:
    """
    Thread-safe guest record store backed by a JSON file.

    Usage:
        store = GuestStore(Path("data/guests.json"))
        store.upsert(GuestRecord(phone_number="972501112222", name="Dana"))
        store.update_status("972501112222", RSVPStatus.ACCEPTED)
        accepted = store.list_by_status(RSVPStatus.ACCEPTED)

    Writes that fail raise PersistenceError *after* the in-memory change is
    applied: later reads in this process see the change, a restart may not.
    """

    def __init__(self, path: Path, clock: Callable[[], datetime] = utc_now):
        self.path = Path(path)
        self._clock = clock
        self._lock = _ReadWriteLock()
        self._guests: Dict[str, GuestRecord] = {}

        if self.path.exists():
            self._guests = self._load()
            logger.info(f"Loaded {len(self._guests)} guests from {self.path}")

    # ── Mutations ──────────────────────────────────────────────────

    def upsert(self, record: GuestRecord) -> GuestRecord:
        """
        Add a new guest or refresh an existing one.

        An existing guest keeps invited_at, and keeps its status and
        rsvp_date unless the incoming status is set (not None/NOT_INVITED).
        Notes are replaced only when the incoming notes are not None.
        """
        with self._lock.write():
            existing = self._guests.get(record.phone_number)

            if existing is not None:
                guest = replace(existing, name=record.name)
                if record.rsvp_status not in (None, RSVPStatus.NOT_INVITED):
                    guest = replace(guest, rsvp_status=record.rsvp_status, rsvp_date=record.rsvp_date)
                if record.notes is not None:
                    guest = replace(guest, notes=record.notes)
                logger.info(f"Updated guest {guest.phone_number} ({guest.name})")
            else:
                guest = record
                if guest.invited_at is None:
                    guest = replace(guest, invited_at=self._clock())
                if guest.rsvp_status is None:
                    guest = replace(guest, rsvp_status=RSVPStatus.PENDING)
                logger.info(f"Added guest {guest.phone_number} ({guest.name})")

            self._guests[guest.phone_number] = guest
            self._save()
            return guest

    def update_status(self, phone_number: str, status: RSVPStatus, notes: Optional[str] = None) -> GuestRecord:
        """Set a guest's RSVP status and stamp rsvp_date."""
        with self._lock.write():
            existing = self._guests.get(phone_number)
            if existing is None:
                raise GuestNotFoundError(phone_number)

            guest = replace(existing, rsvp_status=status, rsvp_date=self._clock())
            if notes:
                guest = replace(guest, notes=notes)

            self._guests[phone_number] = guest
            logger.info(f"RSVP for {phone_number}: {status.value}")
            self._save()
            return guest

    # ── Reads ──────────────────────────────────────────────────────

    def get(self, phone_number: str) -> GuestRecord:
        with self._lock.read():
            guest = self._guests.get(phone_number)
        if guest is None:
            raise GuestNotFoundError(phone_number)
        return guest

    def list_all(self) -> List[GuestRecord]:
        with self._lock.read():
            return list(self._guests.values())

    def list_by_status(self, status: RSVPStatus) -> List[GuestRecord]:
        return [g for g in self.list_all() if g.rsvp_status == status]

    def stats(self) -> dict:
        """Count guests per RSVP status."""
        guests = self.list_all()
        counts = {status.value: 0 for status in RSVPStatus}
        for g in guests:
            if g.rsvp_status is not None:
                counts[g.rsvp_status.value] += 1
        counts["total"] = len(guests)
        return counts

    # ── File I/O ───────────────────────────────────────────────────

    def _save(self) -> None:
        """Write the whole collection. Caller must hold the write lock."""
        try:
            data = json.dumps(
                [guest_to_dict(g) for g in self._guests.values()],
                indent=2,
                ensure_ascii=False,
            )
            self.path.parent.mkdir(parents=True, exist_ok=True)

            fd, tmp_name = tempfile.mkstemp(prefix=".guests-", suffix=".tmp", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save guests to {self.path}: {e}")
            raise PersistenceError(f"failed to save guests: {e}") from e

    def _load(self) -> Dict[str, GuestRecord]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"failed to read {self.path}: {e}") from e

        if not text.strip():
            return {}

        try:
            raw = json.loads(text)
            if not isinstance(raw, list):
                raise ValueError("expected a JSON array of guests")
            guests = [guest_from_dict(item) for item in raw]
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError(f"failed to parse {self.path}: {e}") from e

        return {g.phone_number: g for g in guests}


def guest_to_dict(guest: GuestRecord) -> dict:
    """
    JSON form of a guest, shared by the guest file and the web API.
    rsvp_date and notes are omitted when unset.
    """
    out = {
        "phone_number": guest.phone_number,
        "name": guest.name,
        "rsvp_status": guest.rsvp_status.value if guest.rsvp_status else RSVPStatus.PENDING.value,
    }
    if guest.rsvp_date is not None:
        out["rsvp_date"] = guest.rsvp_date.isoformat()
    out["invited_date"] = guest.invited_at.isoformat() if guest.invited_at else None
    if guest.notes:
        out["notes"] = guest.notes
    return out


def guest_from_dict(item: dict) -> GuestRecord:
    return GuestRecord(
        phone_number=str(item["phone_number"]),
        name=str(item.get("name") or ""),
        rsvp_status=RSVPStatus(item.get("rsvp_status") or RSVPStatus.PENDING.value),
        invited_at=_parse_timestamp(item.get("invited_date")),
        rsvp_date=_parse_timestamp(item.get("rsvp_date")),
        notes=item.get("notes") or None,
    )


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 / RFC 3339 timestamp.

    Accepts a trailing 'Z' and nanosecond fractions; the Go zero time
    counts as unset.
    """
    if not value:
        return None
    s = str(value).strip()
    if s.startswith(_GO_ZERO_TIME_PREFIX):
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    s = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), s, count=1)
    return datetime.fromisoformat(s)
