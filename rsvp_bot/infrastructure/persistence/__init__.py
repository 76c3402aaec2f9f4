from .guest_store import GuestStore, guest_from_dict, guest_to_dict

__all__ = ["GuestStore", "guest_from_dict", "guest_to_dict"]
