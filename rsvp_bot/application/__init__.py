from .rsvp_service import RSVPService

__all__ = ["RSVPService"]
