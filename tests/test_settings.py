from pathlib import Path

import pytest

from rsvp_bot.infrastructure.config import Settings
from rsvp_bot.infrastructure.config.settings import PROVIDER_CLOUD_API, PROVIDER_SELENIUM

ENV_VARS = [
    "MESSAGING_PROVIDER",
    "DEFAULT_COUNTRY_CODE",
    "WHATSAPP_API_KEY",
    "WHATSAPP_PHONE_NUMBER_ID",
    "WHATSAPP_VERIFY_TOKEN",
    "WHATSAPP_APP_SECRET",
    "WHATSAPP_DATA_DIR",
    "WHATSAPP_POLL_INTERVAL",
    "WEDDING_DATE",
    "WEDDING_LOCATION",
    "BRIDE_NAME",
    "GROOM_NAME",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()

    assert settings.whatsapp.provider == PROVIDER_SELENIUM
    assert settings.whatsapp.default_country_code == "972"
    assert settings.wedding.date == "Saturday, January 1, 2025"
    assert settings.wedding.location == "Venue TBD"
    assert settings.guests_file == Path("data") / "guests.json"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MESSAGING_PROVIDER", "Cloud_API")
    monkeypatch.setenv("DEFAULT_COUNTRY_CODE", "+44")
    monkeypatch.setenv("WHATSAPP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("WEDDING_LOCATION", "Ness Ziona")
    monkeypatch.setenv("BRIDE_NAME", "Anat")

    settings = Settings()

    assert settings.whatsapp.provider == PROVIDER_CLOUD_API
    assert settings.whatsapp.default_country_code == "44"
    assert settings.guests_file == tmp_path / "guests.json"
    assert settings.wedding.location == "Ness Ziona"
    assert settings.wedding.bride_name == "Anat"


def test_validate_default_settings_warns_about_venue():
    issues = Settings().validate()
    assert len(issues) == 1
    assert "WEDDING_LOCATION" in issues[0]


def test_validate_cloud_api_credentials(monkeypatch):
    monkeypatch.setenv("MESSAGING_PROVIDER", "cloud_api")
    monkeypatch.setenv("WEDDING_LOCATION", "Ness Ziona")

    issues = Settings().validate()

    assert any("WHATSAPP_API_KEY" in issue for issue in issues)
    assert any("WHATSAPP_VERIFY_TOKEN" in issue for issue in issues)


def test_validate_unknown_provider(monkeypatch):
    monkeypatch.setenv("MESSAGING_PROVIDER", "carrier_pigeon")
    monkeypatch.setenv("WEDDING_LOCATION", "Ness Ziona")

    issues = Settings().validate()

    assert len(issues) == 1
    assert "carrier_pigeon" in issues[0]


def test_poll_interval(monkeypatch):
    assert Settings().whatsapp.poll_interval_seconds == 30

    monkeypatch.setenv("WHATSAPP_POLL_INTERVAL", "0")
    monkeypatch.setenv("WEDDING_LOCATION", "Ness Ziona")
    settings = Settings()

    assert settings.whatsapp.poll_interval_seconds == 0
    assert any("WHATSAPP_POLL_INTERVAL" in issue for issue in settings.validate())
