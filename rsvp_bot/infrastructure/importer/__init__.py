from .guest_list_parser import GuestListParser

__all__ = ["GuestListParser"]
