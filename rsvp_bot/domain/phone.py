"""
Phone Number Canonicalization
=============================

The canonical phone number (country code + subscriber number, digits only)
is the guest identity key. Operator input, guest list imports and WhatsApp
sender IDs all pass through here so they land on the same key.

This is a local-to-international heuristic for a single calling-code
convention, not an E.164 parser.
"""

DEFAULT_COUNTRY_CODE = "972"

_STRIP_CHARS = ("+", " ", "-", "(", ")")


def canonicalize_phone(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Normalize a phone number to its canonical digit string.

    - Strip '+', spaces, hyphens and parentheses.
    - A 10-digit local number with a leading 0 gets the country code
      instead of the 0 (0538268277 -> 972538268277).
    - A redundant 0 right after the country code is dropped
      (9720538268277 -> 972538268277).

    Anything else passes through unchanged, including leading-zero
    numbers that are not exactly 10 digits long.
    """
    number = str(raw or "")
    for ch in _STRIP_CHARS:
        number = number.replace(ch, "")

    if number.startswith("0") and len(number) == 10:
        number = country_code + number[1:]

    if country_code and number.startswith(country_code + "0"):
        number = country_code + number[len(country_code) + 1:]

    return number


def phone_from_sender_id(sender_id: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Extract the canonical phone number from a WhatsApp sender ID.

    Sender IDs look like '972501112222@s.whatsapp.net', optionally with a
    device suffix ('972501112222:12@s.whatsapp.net').
    """
    user = str(sender_id or "").strip().split("@", 1)[0]
    user = user.split(":", 1)[0]
    return canonicalize_phone(user, country_code)
