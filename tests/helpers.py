"""Shared test doubles. These are NOT fixtures - they are regular classes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Set, Tuple

from rsvp_bot.domain.errors import DeliveryError
from rsvp_bot.infrastructure.whatsapp import MessagingProvider, Reachability


class FakeClock:
    """Deterministic clock; each call advances by one minute."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)) -> None:
        self.now = start
        self.calls: List[datetime] = []

    def __call__(self) -> datetime:
        current = self.now
        self.calls.append(current)
        self.now = self.now + timedelta(minutes=1)
        return current


class SpyProvider(MessagingProvider):
    """Records sends; numbers in `unreachable` fail verification."""

    def __init__(self, unreachable: Optional[Set[str]] = None, fail_sends: bool = False) -> None:
        super().__init__()
        self.unreachable = set(unreachable or ())
        self.fail_sends = fail_sends
        self.sent: List[Tuple[str, str]] = []
        self.verified: List[str] = []
        self.closed = False

    def connect(self, **kwargs) -> bool:
        return True

    def is_connected(self) -> bool:
        return not self.closed

    def send_text(self, phone: str, text: str) -> str:
        if self.fail_sends:
            raise DeliveryError(f"failed to send message to {phone}: network down")
        self.sent.append((phone, text))
        return f"msg-{len(self.sent)}"

    def verify_reachable(self, phones: Sequence[str]) -> Dict[str, Reachability]:
        self.verified.extend(phones)
        return {p: Reachability(reachable=p not in self.unreachable, resolved_identity=p) for p in phones}

    def close(self) -> None:
        self.closed = True

    def emit(self, event) -> None:
        self._dispatch(event)


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no JSON")
        return self._body


class FakeSession:
    """Stands in for requests.Session; answers every call with a fixed response."""

    def __init__(self, get_response=None, post_response=None, post_error=None) -> None:
        self.get_response = get_response or FakeResponse(200, {"id": "12345"})
        self.post_response = post_response or FakeResponse(200, {"messages": [{"id": "wamid.OUT"}]})
        self.post_error = post_error
        self.posts: list = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        return self.get_response

    def post(self, url, headers=None, json=None, timeout=None):
        self.posts.append((url, headers, json))
        if self.post_error:
            raise self.post_error
        return self.post_response

    def close(self) -> None:
        self.closed = True


class FakeWebClient:
    """Stands in for the Selenium WhatsAppClient."""

    def __init__(self):
        self.chats = {}
        self.registered = set()
        self.sent = []
        self.current = None
        self.closed = False

    def wait_for_login(self, timeout=None):
        return True

    def check_number(self, phone):
        return phone in self.registered

    def open_chat(self, phone):
        self.current = phone
        return True

    def send_message(self, text):
        self.sent.append((self.current, text))
        return True

    def latest_outgoing_id(self):
        return f"false_{self.current}_{len(self.sent)}"

    def incoming_messages(self):
        return list(self.chats.get(self.current, []))

    def close(self):
        self.closed = True
