"""
Messaging Provider - Abstraction Layer for WhatsApp Messaging
==============================================================

Provides a unified interface for sending WhatsApp messages, checking that a
number is on WhatsApp, and receiving inbound events.

USAGE:
    # Selenium (WhatsApp Web in a browser)
    provider = SeleniumProvider()
    provider.connect()
    provider.confirm_login()
    provider.send_text("972501112222", "Hello!")

    # WhatsApp Cloud API (inbound arrives through the webhook server)
    provider = CloudAPIProvider(api_key="EAAxxxxxxx", phone_number_id="12345")
    provider.connect()
    provider.send_text("972501112222", "Hello!")
"""

import hashlib
import hmac
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from ...domain.errors import DeliveryError
from ..config import WhatsAppSettings
from .events import Connected, Disconnected, EventHandler, LoggedOut, MessageReceived, MessagingEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reachability:
    """Result of checking one number against WhatsApp."""
    reachable: bool
    resolved_identity: str


class MessagingProvider(ABC):
    """
    Abstract base class for WhatsApp messaging providers.
    Implement this interface to add new messaging backends.

    Inbound events go to the handler registered with set_event_handler().
    """

    def __init__(self):
        self._event_handler: Optional[EventHandler] = None

    @abstractmethod
    def connect(self, **kwargs) -> bool:
        """Connect to the messaging service. Returns True if successful."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if provider is currently connected and ready."""
        ...

    @abstractmethod
    def send_text(self, phone: str, text: str) -> str:
        """Send a text message. Returns the message ID; raises DeliveryError."""
        ...

    @abstractmethod
    def verify_reachable(self, phones: Sequence[str]) -> Dict[str, Reachability]:
        """Check which numbers are on WhatsApp. Raises DeliveryError if the check itself fails."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...

    def set_event_handler(self, handler: Optional[EventHandler]) -> None:
        self._event_handler = handler

    def _dispatch(self, event: MessagingEvent) -> None:
        """Deliver an event to the registered handler, skipping self-sent messages."""
        if isinstance(event, MessageReceived) and event.is_from_me:
            return

        if self._event_handler is None:
            if isinstance(event, MessageReceived):
                logger.info(f"Received message from {event.sender}: {event.text[:50]}")
            return

        try:
            self._event_handler(event)
        except Exception as e:
            logger.exception(f"Error handling {type(event).__name__}: {e}")


class SeleniumProvider(MessagingProvider):
    """
    Selenium-based WhatsApp Web automation.
    Wraps WhatsAppClient; inbound replies are picked up by poll_replies(),
    either on demand or from the background poller started with start_polling().

    One browser serves every caller, so each driver interaction runs under
    a lock. Events are dispatched outside it.
    """

    def __init__(self, headless: bool = False):
        super().__init__()
        self._headless = headless
        self._client = None
        self._connected = False
        self._seen_ids: Dict[str, set] = {}
        self._driver_lock = threading.Lock()
        self._stop_polling = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

    def connect(self, **kwargs) -> bool:
        """Launch browser and open WhatsApp Web."""
        try:
            from .whatsapp_client import WhatsAppClient
            self._client = WhatsAppClient(headless=self._headless)
            return True
        except Exception as e:
            logger.exception(f"Failed to launch Selenium WhatsApp: {e}")
            return False

    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    def confirm_login(self, timeout: Optional[int] = None) -> bool:
        """Wait for QR code scan and confirm login."""
        if not self._client:
            return False
        self._connected = self._client.wait_for_login(timeout=timeout)
        if self._connected:
            self._dispatch(Connected())
        return self._connected

    def verify_reachable(self, phones: Sequence[str]) -> Dict[str, Reachability]:
        client = self._require_client()
        result = {}
        for phone in phones:
            try:
                with self._driver_lock:
                    reachable = client.check_number(phone)
            except Exception as e:
                raise DeliveryError(f"failed to verify number on WhatsApp: {e}") from e
            result[phone] = Reachability(reachable=reachable, resolved_identity=phone)
        return result

    def send_text(self, phone: str, text: str) -> str:
        client = self._require_client()
        try:
            with self._driver_lock:
                if not client.open_chat(phone):
                    raise DeliveryError(f"failed to open chat with {phone}")
                if phone not in self._seen_ids:
                    # Whatever is in the chat now predates this message; replies after it are new
                    self._seen_ids[phone] = {msg_id for msg_id, _ in client.incoming_messages()}
                if not client.send_message(text):
                    raise DeliveryError(f"failed to send message to {phone}")
                return client.latest_outgoing_id() or f"selenium-{uuid.uuid4().hex}"
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(f"failed to send message to {phone}: {e}") from e

    def poll_replies(self, phones: Iterable[str]) -> int:
        """
        Open each chat and dispatch incoming messages not seen before.

        A chat never messaged or polled before only has its existing
        messages recorded, so old messages are not replayed. Returns the
        number of dispatched messages.
        """
        client = self._require_client()
        dispatched = 0

        for phone in phones:
            if self._stop_polling.is_set():
                break

            with self._driver_lock:
                try:
                    if not client.open_chat(phone):
                        continue
                    messages = client.incoming_messages()
                except Exception as e:
                    logger.warning(f"Could not read chat with {phone}: {e}")
                    continue
                new_messages = self._unseen(phone, messages)

            for msg_id, text in new_messages:
                self._dispatch(MessageReceived(sender=f"{phone}@c.us", text=text, message_id=msg_id))
                dispatched += 1

        return dispatched

    def _unseen(self, phone: str, messages: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
        seen = self._seen_ids.get(phone)
        if seen is None:
            self._seen_ids[phone] = {msg_id for msg_id, _ in messages}
            return []

        new_messages = [(msg_id, text) for msg_id, text in messages if msg_id not in seen]
        seen.update(msg_id for msg_id, _ in new_messages)
        return new_messages

    def start_polling(self, phones: Callable[[], Iterable[str]], interval_seconds: float = 30) -> None:
        """
        Poll chats for replies on a daemon thread until close().

        `phones` is called before every round, so guests invited later are
        picked up too.
        """
        if self._poll_thread is not None and self._poll_thread.is_alive():
            return

        self._stop_polling.clear()
        self._poll_thread = threading.Thread(
            target=self._poll_loop,
            args=(phones, interval_seconds),
            name="whatsapp-reply-poller",
            daemon=True,
        )
        self._poll_thread.start()
        logger.info(f"Polling for replies every {interval_seconds}s")

    def _poll_loop(self, phones: Callable[[], Iterable[str]], interval_seconds: float) -> None:
        while not self._stop_polling.wait(interval_seconds):
            try:
                count = self.poll_replies(list(phones()))
            except Exception as e:
                logger.exception(f"Reply polling failed: {e}")
                continue
            if count:
                logger.info(f"Picked up {count} new replies")

    def stop_polling(self, timeout: float = 60) -> None:
        if self._poll_thread is None:
            return
        self._stop_polling.set()
        self._poll_thread.join(timeout)
        if self._poll_thread.is_alive():
            logger.warning("Reply poller did not stop in time")
            return
        self._poll_thread = None
        self._stop_polling.clear()

    def _require_client(self):
        if not self._client:
            raise DeliveryError("WhatsApp Web is not connected")
        return self._client

    def close(self) -> None:
        self.stop_polling()
        if self._client:
            try:
                with self._driver_lock:
                    self._client.close()
            except Exception as e:
                logger.debug(f"Error closing browser: {e}")
            self._client = None
            if self._connected:
                self._connected = False
                self._dispatch(Disconnected(reason="closed"))


class CloudAPIProvider(MessagingProvider):
    """
    WhatsApp Cloud API provider.

    Outbound messages are POSTed to the Graph API. Inbound messages arrive
    as webhook calls, which the web server hands to handle_webhook().
    """

    DEFAULT_API_URL = "https://graph.facebook.com/v18.0"

    def __init__(
        self,
        api_key: str = "",
        phone_number_id: str = "",
        api_url: str = "",
        timeout_seconds: int = 15,
        session: Optional[requests.Session] = None,
    ):
        super().__init__()
        self._api_key = api_key
        self._phone_number_id = phone_number_id
        self._api_url = (api_url or self.DEFAULT_API_URL).rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._connected = False

    @classmethod
    def from_settings(cls, settings: WhatsAppSettings) -> "CloudAPIProvider":
        return cls(
            api_key=settings.api_key,
            phone_number_id=settings.phone_number_id,
            api_url=settings.api_url,
            timeout_seconds=settings.timeout_seconds,
        )

    @property
    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def connect(self, **kwargs) -> bool:
        """Verify API credentials are valid."""
        if not self._api_key or not self._phone_number_id:
            logger.error("CloudAPIProvider: api_key and phone_number_id are required")
            return False

        try:
            response = self._session.get(
                f"{self._api_url}/{self._phone_number_id}",
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(f"CloudAPIProvider: credential check failed: {e}")
            return False

        self._connected = response.ok
        if self._connected:
            self._dispatch(Connected())
        else:
            logger.error(f"CloudAPIProvider: credential check returned HTTP {response.status_code}")
        return self._connected

    def is_connected(self) -> bool:
        return self._connected

    def verify_reachable(self, phones: Sequence[str]) -> Dict[str, Reachability]:
        # The Cloud API has no contact lookup; undeliverable numbers surface
        # as send errors instead.
        return {
            phone: Reachability(reachable=phone.isdigit() and 8 <= len(phone) <= 15, resolved_identity=phone)
            for phone in phones
        }

    def send_text(self, phone: str, text: str) -> str:
        if not self._connected:
            raise DeliveryError("Cloud API provider is not connected")

        payload = {
            "messaging_product": "whatsapp",
            "to": phone,
            "type": "text",
            "text": {"body": text},
        }

        try:
            response = self._session.post(
                f"{self._api_url}/{self._phone_number_id}/messages",
                headers=self._headers,
                json=payload,
                timeout=self._timeout,
            )
        except requests.Timeout as e:
            raise DeliveryError(f"timed out sending message to {phone}") from e
        except requests.RequestException as e:
            raise DeliveryError(f"failed to send message to {phone}: {e}") from e

        data = self._json(response)
        if response.status_code == 401:
            # Expired or revoked access token
            self._connected = False
            self._dispatch(LoggedOut())
        if not response.ok:
            error = data.get("error", {}) if isinstance(data, dict) else {}
            detail = error.get("message") or f"HTTP {response.status_code}"
            raise DeliveryError(f"failed to send message to {phone}: {detail}")

        try:
            message_id = data["messages"][0]["id"]
        except (KeyError, IndexError, TypeError):
            raise DeliveryError(f"unexpected Cloud API response for {phone}: {data}")

        logger.info(f"Message sent to {phone} (ID: {message_id})")
        return message_id

    def parse_webhook(self, payload: Any) -> List[MessageReceived]:
        """
        Extract inbound text messages from a webhook payload.

        Status updates, media messages and anything not shaped like the
        documented payload are skipped.
        """
        received = []
        if not isinstance(payload, dict):
            return received

        for entry in _dict_items(payload.get("entry")):
            for change in _dict_items(entry.get("changes")):
                value = change.get("value")
                if not isinstance(value, dict):
                    continue
                for message in _dict_items(value.get("messages")):
                    if message.get("type") != "text":
                        logger.debug(f"Ignoring {message.get('type')} message")
                        continue
                    sender = message.get("from")
                    text = message.get("text")
                    body = text.get("body") if isinstance(text, dict) else None
                    if not isinstance(sender, str) or not isinstance(body, str) or not sender or not body:
                        continue
                    received.append(
                        MessageReceived(
                            sender=f"{sender}@s.whatsapp.net",
                            text=body,
                            message_id=str(message.get("id", "")),
                        )
                    )
        return received

    def dispatch_events(self, events: Iterable[MessagingEvent]) -> None:
        for event in events:
            self._dispatch(event)

    def handle_webhook(self, payload: Any) -> int:
        """Dispatch text messages from a webhook payload. Returns how many were dispatched."""
        received = self.parse_webhook(payload)
        self.dispatch_events(received)
        return len(received)

    def close(self) -> None:
        if self._connected:
            self._connected = False
            self._dispatch(Disconnected(reason="closed"))
        self._session.close()
        logger.info("CloudAPIProvider: closed")

    @staticmethod
    def _json(response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {}


def _dict_items(items: Any) -> List[dict]:
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> bool:
    """Check a Meta webhook signature (X-Hub-Signature-256: sha256=<hex>)."""
    if not signature_header or not signature_header.startswith("sha256="):
        return False

    expected = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, signature_header[len("sha256="):])
