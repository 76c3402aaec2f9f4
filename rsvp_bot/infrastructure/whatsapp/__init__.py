from .events import Connected, Disconnected, EventHandler, LoggedOut, MessageReceived, MessagingEvent
from .messaging_provider import (
    CloudAPIProvider,
    MessagingProvider,
    Reachability,
    SeleniumProvider,
    verify_signature,
)

__all__ = [
    "Connected",
    "Disconnected",
    "EventHandler",
    "LoggedOut",
    "MessageReceived",
    "MessagingEvent",
    "CloudAPIProvider",
    "MessagingProvider",
    "Reachability",
    "SeleniumProvider",
    "verify_signature",
]
