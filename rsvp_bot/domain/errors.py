"""
Error Taxonomy
==============

Every failure in the bot is one of these. None of them is fatal: each is
raised to the immediate caller, which decides whether it is a no-op,
something to print, or an HTTP error.
"""


class RSVPBotError(Exception):
    """Base exception for RSVP bot errors."""
    pass


class GuestNotFoundError(RSVPBotError):
    """Raised when no guest record exists for a phone number."""

    def __init__(self, phone_number: str):
        self.phone_number = phone_number
        super().__init__(f"guest not found: {phone_number}")


class PersistenceError(RSVPBotError):
    """
    Raised when the guest file cannot be read or written.

    On a failed write the in-memory change has already been applied:
    the state is current for this process but may not survive a restart.
    """
    pass


class DeliveryError(RSVPBotError):
    """Raised when the messaging backend cannot verify or deliver a message."""
    pass
