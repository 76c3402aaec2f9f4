import pytest

from rsvp_bot.domain.phone import canonicalize_phone, phone_from_sender_id


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0538268277", "972538268277"),
        ("9720538268277", "972538268277"),
        ("+972 53-826-8277", "972538268277"),
        ("(053) 826-8277", "972538268277"),
        ("972538268277", "972538268277"),
    ],
)
def test_canonicalize_phone(raw, expected):
    assert canonicalize_phone(raw) == expected


def test_leading_zero_with_other_length_is_left_alone():
    assert canonicalize_phone("053826827") == "053826827"
    assert canonicalize_phone("05382682770") == "05382682770"


def test_foreign_number_passes_through():
    assert canonicalize_phone("+1 (555) 123-4567") == "15551234567"


def test_custom_country_code():
    assert canonicalize_phone("0301234567", country_code="92") == "92301234567"
    assert canonicalize_phone("920301234567", country_code="92") == "92301234567"


@pytest.mark.parametrize(
    "raw",
    ["0538268277", "9720538268277", "+972-53-826-8277", "972538268277", "15551234567", "12345", ""],
)
def test_canonicalize_is_idempotent(raw):
    once = canonicalize_phone(raw)
    assert canonicalize_phone(once) == once


def test_empty_and_none_input():
    assert canonicalize_phone("") == ""
    assert canonicalize_phone(None) == ""


@pytest.mark.parametrize(
    "sender, expected",
    [
        ("972501112222@s.whatsapp.net", "972501112222"),
        ("972501112222@domain", "972501112222"),
        ("972501112222:12@s.whatsapp.net", "972501112222"),
        ("0501112222@c.us", "972501112222"),
        ("972501112222", "972501112222"),
    ],
)
def test_phone_from_sender_id(sender, expected):
    assert phone_from_sender_id(sender) == expected
