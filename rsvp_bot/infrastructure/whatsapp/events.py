"""
Messaging Events
================

The closed set of events a messaging provider emits. Only MessageReceived
matters to RSVP handling; the rest are connection lifecycle notifications.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class MessageReceived:
    sender: str
    text: str
    is_from_me: bool = False
    message_id: str = ""


@dataclass(frozen=True)
class Connected:
    pass


@dataclass(frozen=True)
class Disconnected:
    reason: str = ""


@dataclass(frozen=True)
class LoggedOut:
    pass


MessagingEvent = Union[MessageReceived, Connected, Disconnected, LoggedOut]

EventHandler = Callable[[MessagingEvent], None]
