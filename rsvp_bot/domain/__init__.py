# Domain Layer
# ============
# Pure business logic with no I/O:
# - models: GuestRecord and RSVPStatus
# - phone: canonical phone numbers (the guest identity key)
# - rsvp_classifier: keyword-based reply classification
# - errors: exception taxonomy shared by every layer

from .errors import RSVPBotError, GuestNotFoundError, PersistenceError, DeliveryError
from .models import GuestRecord, RSVPStatus
from .phone import canonicalize_phone, phone_from_sender_id
from .rsvp_classifier import RSVPClassifier, RSVPIntent

__all__ = [
    "RSVPBotError",
    "GuestNotFoundError",
    "PersistenceError",
    "DeliveryError",
    "GuestRecord",
    "RSVPStatus",
    "canonicalize_phone",
    "phone_from_sender_id",
    "RSVPClassifier",
    "RSVPIntent",
]
