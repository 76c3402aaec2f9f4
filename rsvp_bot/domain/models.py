from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RSVPStatus(str, Enum):
    """Attendance confirmation status for a guest."""
    NOT_INVITED = "not_invited"
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


@dataclass(frozen=True)
class GuestRecord:
    """
    A wedding guest, keyed by canonical phone number.

    `rsvp_status=None` on an incoming record means "blank": the store keeps
    whatever status it already holds for that number.
    """
    phone_number: str
    name: str = ""
    rsvp_status: Optional[RSVPStatus] = None
    invited_at: Optional[datetime] = None
    rsvp_date: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def has_responded(self) -> bool:
        return self.rsvp_status in (RSVPStatus.ACCEPTED, RSVPStatus.DECLINED)
