"""
RSVP Service - Invitation & Reply Orchestration
================================================

Ties the guest store, the reply classifier and a messaging provider
together:

    invite:  phone -> canonicalize -> store.upsert -> verify -> send invitation
    reply:   sender -> canonicalize -> store.get -> classify -> store.update_status -> verify -> send confirmation

FAIL-FORWARD:
Guest state is written before anything is sent and is never rolled back.
A guest whose invitation could not be delivered stays on record, and an
RSVP whose confirmation could not be delivered stays recorded.
"""

import logging
from typing import Iterable, Mapping, Optional

from ..domain.errors import DeliveryError, GuestNotFoundError, RSVPBotError
from ..domain.models import GuestRecord, RSVPStatus
from ..domain.phone import DEFAULT_COUNTRY_CODE, canonicalize_phone, phone_from_sender_id
from ..domain.rsvp_classifier import RSVPClassifier, RSVPIntent
from ..infrastructure.config import WeddingSettings
from ..infrastructure.persistence import GuestStore
from ..infrastructure.whatsapp import (
    Connected,
    Disconnected,
    LoggedOut,
    MessageReceived,
    MessagingEvent,
    MessagingProvider,
)

logger = logging.getLogger(__name__)

# ── Message Templates ──────────────────────────────────────────
INVITATION_MSG = (
    "🎉 *Wedding Invitation*\n\n"
    "Dear {name},\n\n"
    "You are cordially invited to celebrate the wedding of\n\n"
    "*{bride}* & *{groom}*\n\n"
    "📅 Date: {date}\n"
    "📍 Location: {location}\n\n"
    "Please confirm your attendance.\n\n"
    "Reply with:\n✅ *YES* to accept\n❌ *NO* to decline"
)
ACCEPTED_MSG = (
    "🎉 Wonderful! We're so excited to celebrate with you!\n\n"
    "We've confirmed your attendance for the wedding of {bride} & {groom} on {date}.\n\n"
    "See you there! 💕"
)
DECLINED_MSG = (
    "Thank you for letting us know. We're sorry you won't be able to join us "
    "for the wedding of {bride} & {groom}.\n\n"
    "We'll miss you! 💕"
)

_INTENT_TO_STATUS = {
    RSVPIntent.ACCEPT: RSVPStatus.ACCEPTED,
    RSVPIntent.DECLINE: RSVPStatus.DECLINED,
}


class RSVPService:
    """
    Sends invitations and records RSVP replies.

    Usage:
        service = RSVPService(provider, store, settings.wedding)
        provider.set_event_handler(service.handle_event)
        service.send_invitation("050-111-2222", "Dana")
    """

    def __init__(
        self,
        messaging: MessagingProvider,
        store: GuestStore,
        wedding: WeddingSettings,
        country_code: str = DEFAULT_COUNTRY_CODE,
        classifier: Optional[RSVPClassifier] = None,
    ):
        self._messaging = messaging
        self._store = store
        self._wedding = wedding
        self._country_code = country_code
        self._classifier = classifier or RSVPClassifier()

    # ── Inbound ────────────────────────────────────────────────────

    def handle_event(self, event: MessagingEvent) -> None:
        """Entry point for provider events."""
        if isinstance(event, MessageReceived):
            if event.is_from_me:
                return
            self.handle_inbound_message(event.sender, event.text)
        elif isinstance(event, Connected):
            logger.info("Connected to WhatsApp")
        elif isinstance(event, Disconnected):
            logger.info(f"Disconnected from WhatsApp {event.reason}".rstrip())
        elif isinstance(event, LoggedOut):
            logger.warning("Logged out from WhatsApp")
        else:
            raise TypeError(f"Unknown messaging event: {event!r}")

    def handle_inbound_message(self, sender_id: str, text: str) -> Optional[RSVPStatus]:
        """
        Record an RSVP from a guest's reply.

        Returns the new status, or None when the message was ignored
        (unknown sender or not an RSVP). Raises PersistenceError if the
        status could not be saved, DeliveryError if the confirmation could
        not be sent; in the latter case the RSVP is still recorded.
        """
        if not text or not text.strip():
            return None

        phone = phone_from_sender_id(sender_id, self._country_code)

        # Only guests that were invited can RSVP
        try:
            guest = self._store.get(phone)
        except GuestNotFoundError:
            logger.debug(f"Ignoring message from unknown sender {phone}")
            return None

        intent = self._classifier.classify(text)
        status = _INTENT_TO_STATUS.get(intent)
        if status is None:
            logger.debug(f"Message from {phone} is not an RSVP")
            return None

        self._store.update_status(phone, status)
        logger.info(f"{guest.name or phone} replied: {status.value}")

        self._send_to_guest(phone, self._confirmation_message(status))
        return status

    # ── Outbound ───────────────────────────────────────────────────

    def send_invitation(self, phone_number: str, name: str, notes: Optional[str] = None) -> GuestRecord:
        """
        Record the guest and send them an invitation.

        New guests start as pending; a guest who already answered keeps
        their answer. Raises DeliveryError (message verbatim) if the number
        is not on WhatsApp or the send fails; the guest stays on record.
        """
        phone = canonicalize_phone(phone_number, self._country_code)

        self._store.upsert(GuestRecord(phone_number=phone, name=name, notes=notes))

        message_id = self._send_to_guest(phone, self._invitation_message(name))
        logger.info(f"Invitation sent to {name} ({phone}), message ID: {message_id}")
        return self._store.get(phone)

    def send_invitations(self, guests: Iterable[Mapping[str, str]]) -> dict:
        """
        Invite many guests at once.

        Args:
            guests: dicts with 'name', 'phone' and optional 'notes' keys

        Returns:
            Dict with 'sent', 'failed' counts and 'errors' messages
        """
        result = {"sent": 0, "failed": 0, "errors": []}

        for guest in guests:
            name = str(guest.get("name", "")).strip()
            phone = str(guest.get("phone", "")).strip()
            if not name or not phone:
                result["failed"] += 1
                result["errors"].append(f"Missing name or phone: {dict(guest)}")
                continue

            try:
                self.send_invitation(phone, name, notes=guest.get("notes") or None)
                result["sent"] += 1
            except RSVPBotError as e:
                logger.warning(f"Invitation to {name} ({phone}) failed: {e}")
                result["failed"] += 1
                result["errors"].append(f"{name}: {e}")

        logger.info(f"Bulk invitations: {result['sent']} sent, {result['failed']} failed")
        return result

    # ── Messages ───────────────────────────────────────────────────

    def _send_to_guest(self, phone: str, text: str) -> str:
        """Check the number is on WhatsApp, then send to the identity it resolves to."""
        reachability = self._messaging.verify_reachable([phone]).get(phone)
        if reachability is None or not reachability.reachable:
            raise DeliveryError(
                f"number {phone} is not registered on WhatsApp or not in contacts. "
                "Please ensure: 1) The number has WhatsApp, "
                "2) The number is saved in your phone contacts with country code, "
                "3) WhatsApp has synced contacts"
            )
        return self._messaging.send_text(reachability.resolved_identity or phone, text)

    def _invitation_message(self, name: str) -> str:
        w = self._wedding
        return INVITATION_MSG.format(
            name=name, bride=w.bride_name, groom=w.groom_name, date=w.date, location=w.location,
        )

    def _confirmation_message(self, status: RSVPStatus) -> str:
        w = self._wedding
        template = ACCEPTED_MSG if status is RSVPStatus.ACCEPTED else DECLINED_MSG
        return template.format(bride=w.bride_name, groom=w.groom_name, date=w.date)
