from pathlib import Path

import pytest

from rsvp_bot.application import RSVPService
from rsvp_bot.domain.errors import DeliveryError, PersistenceError
from rsvp_bot.domain.models import GuestRecord, RSVPStatus
from rsvp_bot.infrastructure.config import WeddingSettings
from rsvp_bot.infrastructure.persistence import GuestStore
from rsvp_bot.infrastructure.whatsapp import Connected, Disconnected, LoggedOut, MessageReceived, SeleniumProvider

from .helpers import FakeWebClient, SpyProvider

WEDDING = WeddingSettings(date="05.01.2026", location="Ness Ziona", bride_name="Anat", groom_name="David")


@pytest.fixture
def store(tmp_path: Path, clock) -> GuestStore:
    return GuestStore(tmp_path / "guests.json", clock=clock)


@pytest.fixture
def service(provider, store) -> RSVPService:
    svc = RSVPService(provider, store, WEDDING)
    provider.set_event_handler(svc.handle_event)
    return svc


def test_invite_then_accept_end_to_end(service, provider, store):
    service.send_invitation("0501112222", "Dana")

    guests = store.list_all()
    assert len(guests) == 1
    assert guests[0].phone_number == "972501112222"
    assert guests[0].rsvp_status is RSVPStatus.PENDING
    assert provider.sent[0][0] == "972501112222"
    provider.sent.clear()

    status = service.handle_inbound_message("972501112222@domain", "Yes, can't wait!")

    guest = store.get("972501112222")
    assert status is RSVPStatus.ACCEPTED
    assert guest.rsvp_status is RSVPStatus.ACCEPTED
    assert guest.rsvp_date is not None
    assert len(provider.sent) == 1
    recipient, text = provider.sent[0]
    assert recipient == "972501112222"
    assert "Anat & David" in text
    assert "05.01.2026" in text


def test_decline_sends_decline_message(service, provider, store):
    service.send_invitation("0501112222", "Dana")
    provider.sent.clear()

    assert service.handle_inbound_message("972501112222@s.whatsapp.net", "Sorry, can't make it") is RSVPStatus.DECLINED

    assert store.get("972501112222").rsvp_status is RSVPStatus.DECLINED
    assert len(provider.sent) == 1
    assert "sorry you won't be able to join us" in provider.sent[0][1]


def test_message_from_unknown_sender_is_noop(service, provider, store, tmp_path):
    status = service.handle_inbound_message("15551234567@s.whatsapp.net", "yes!")

    assert status is None
    assert store.list_all() == []
    assert provider.sent == []
    assert not (tmp_path / "guests.json").exists()


def test_unrecognized_reply_is_noop(service, provider, store):
    service.send_invitation("0501112222", "Dana")
    provider.sent.clear()

    assert service.handle_inbound_message("972501112222@s.whatsapp.net", "What's the dress code?") is None

    guest = store.get("972501112222")
    assert guest.rsvp_status is RSVPStatus.PENDING
    assert guest.rsvp_date is None
    assert provider.sent == []


def test_empty_message_is_noop(service, provider, store):
    service.send_invitation("0501112222", "Dana")
    provider.sent.clear()

    assert service.handle_inbound_message("972501112222@s.whatsapp.net", "   ") is None
    assert provider.sent == []


def test_invitation_message_content(service, provider):
    service.send_invitation("+972-50-111-2222", "Dana")

    recipient, text = provider.sent[0]
    assert recipient == "972501112222"
    assert "Dear Dana" in text
    assert "*Anat* & *David*" in text
    assert "Ness Ziona" in text
    assert "✅ *YES* to accept" in text
    assert provider.verified == ["972501112222"]


def test_unreachable_number_keeps_guest_on_record(store, clock):
    provider = SpyProvider(unreachable={"972501112222"})
    service = RSVPService(provider, store, WEDDING)

    with pytest.raises(DeliveryError) as exc:
        service.send_invitation("0501112222", "Dana")

    assert "972501112222 is not registered on WhatsApp" in str(exc.value)
    assert store.get("972501112222").rsvp_status is RSVPStatus.PENDING
    assert provider.sent == []


def test_failed_confirmation_keeps_rsvp(store):
    store.upsert(GuestRecord(phone_number="972501112222", name="Dana"))
    provider = SpyProvider(fail_sends=True)
    service = RSVPService(provider, store, WEDDING)

    with pytest.raises(DeliveryError):
        service.handle_inbound_message("972501112222@s.whatsapp.net", "yes")

    assert store.get("972501112222").rsvp_status is RSVPStatus.ACCEPTED


def test_confirmation_not_sent_to_unreachable_number(service, provider, store):
    service.send_invitation("0501112222", "Dana")
    provider.sent.clear()
    provider.unreachable.add("972501112222")

    with pytest.raises(DeliveryError, match="not registered on WhatsApp"):
        service.handle_inbound_message("972501112222@s.whatsapp.net", "yes")

    assert store.get("972501112222").rsvp_status is RSVPStatus.ACCEPTED
    assert provider.sent == []
    assert provider.verified == ["972501112222", "972501112222"]


def test_persistence_failure_skips_confirmation(tmp_path, provider):
    blocker = tmp_path / "data"
    blocker.write_text("", encoding="utf-8")
    store = GuestStore(blocker / "guests.json")
    service = RSVPService(provider, store, WEDDING)
    with pytest.raises(PersistenceError):
        store.upsert(GuestRecord(phone_number="972501112222", name="Dana"))

    with pytest.raises(PersistenceError):
        service.handle_inbound_message("972501112222@s.whatsapp.net", "yes")

    assert store.get("972501112222").rsvp_status is RSVPStatus.ACCEPTED
    assert provider.sent == []


def test_reinvite_keeps_answer_and_invited_at(service, provider, store):
    first = service.send_invitation("0501112222", "Dana")
    service.handle_inbound_message("972501112222@s.whatsapp.net", "yes")

    again = service.send_invitation("050-111-2222", "Dana Levi", notes="table 3")

    assert again.rsvp_status is RSVPStatus.ACCEPTED
    assert again.invited_at == first.invited_at
    assert again.name == "Dana Levi"
    assert again.notes == "table 3"
    assert len(store.list_all()) == 1


def test_events_reach_service_through_provider(service, provider, store):
    service.send_invitation("0501112222", "Dana")
    provider.sent.clear()

    provider.emit(Connected())
    provider.emit(MessageReceived(sender="972501112222@s.whatsapp.net", text="yes", is_from_me=True))
    assert provider.sent == []

    provider.emit(MessageReceived(sender="972501112222@s.whatsapp.net", text="❌"))
    provider.emit(Disconnected(reason="network"))
    provider.emit(LoggedOut())

    assert store.get("972501112222").rsvp_status is RSVPStatus.DECLINED
    assert len(provider.sent) == 1


def test_handler_errors_do_not_escape_dispatch(store):
    store.upsert(GuestRecord(phone_number="972501112222", name="Dana"))
    provider = SpyProvider(fail_sends=True)
    service = RSVPService(provider, store, WEDDING)
    provider.set_event_handler(service.handle_event)

    provider.emit(MessageReceived(sender="972501112222@s.whatsapp.net", text="yes"))

    assert store.get("972501112222").rsvp_status is RSVPStatus.ACCEPTED


def test_handle_event_rejects_unknown_event(service):
    with pytest.raises(TypeError):
        service.handle_event(object())


def test_send_invitations_bulk(store):
    provider = SpyProvider(unreachable={"972503334444"})
    service = RSVPService(provider, store, WEDDING)

    result = service.send_invitations(
        [
            {"name": "Dana", "phone": "0501112222", "notes": ""},
            {"name": "Noa", "phone": "0503334444", "notes": "vegan"},
            {"name": "", "phone": "0505556666"},
        ]
    )

    assert result["sent"] == 1
    assert result["failed"] == 2
    assert len(result["errors"]) == 2
    assert [g.name for g in store.list_all()] == ["Dana", "Noa"]
    assert store.get("972503334444").notes == "vegan"


def test_selenium_reply_sent_before_first_poll_is_recorded(store):
    web_client = FakeWebClient()
    web_client.registered.add("972501112222")
    provider = SeleniumProvider()
    provider._client = web_client
    service = RSVPService(provider, store, WEDDING)
    provider.set_event_handler(service.handle_event)

    service.send_invitation("0501112222", "Dana")
    web_client.chats["972501112222"] = [("true_1", "Yes!")]
    provider.poll_replies(["972501112222"])

    assert store.get("972501112222").rsvp_status is RSVPStatus.ACCEPTED
    assert [recipient for recipient, _ in web_client.sent] == ["972501112222", "972501112222"]
    assert "We've confirmed your attendance" in web_client.sent[1][1]
