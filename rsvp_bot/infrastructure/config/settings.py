"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclass for safety and clarity
- Single source of truth for all configurable values

EXTENSIBILITY:
- To add a messaging backend: add its credentials to WhatsAppSettings
- To move guest data elsewhere: point WHATSAPP_DATA_DIR at another directory
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache

# Load .env file if present (development convenience)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv is optional

PROVIDER_SELENIUM = "selenium"
PROVIDER_CLOUD_API = "cloud_api"


@dataclass(frozen=True)
class WhatsAppSettings:
    """Messaging backend settings."""

    provider: str = field(
        default_factory=lambda: os.getenv("MESSAGING_PROVIDER", PROVIDER_SELENIUM).strip().lower()
    )

    # Country code used to turn local numbers (05XXXXXXXX) into international ones
    default_country_code: str = field(
        default_factory=lambda: os.getenv("DEFAULT_COUNTRY_CODE", "972").strip().lstrip("+")
    )

    # Selenium: MUST be False for QR code scanning
    headless: bool = False
    login_timeout_seconds: int = 120
    # Seconds between background checks for replies; 0 turns the poller off
    poll_interval_seconds: int = field(
        default_factory=lambda: int(os.getenv("WHATSAPP_POLL_INTERVAL", "30"))
    )

    # WhatsApp Cloud API
    api_key: str = field(default_factory=lambda: os.getenv("WHATSAPP_API_KEY", ""))
    phone_number_id: str = field(default_factory=lambda: os.getenv("WHATSAPP_PHONE_NUMBER_ID", ""))
    api_url: str = "https://graph.facebook.com/v18.0"
    verify_token: str = field(default_factory=lambda: os.getenv("WHATSAPP_VERIFY_TOKEN", ""))
    app_secret: str = field(default_factory=lambda: os.getenv("WHATSAPP_APP_SECRET", ""))
    timeout_seconds: int = 15


@dataclass(frozen=True)
class WeddingSettings:
    """Event details used in invitation and confirmation messages."""

    date: str = field(default_factory=lambda: os.getenv("WEDDING_DATE", "Saturday, January 1, 2025"))
    location: str = field(default_factory=lambda: os.getenv("WEDDING_LOCATION", "Venue TBD"))
    bride_name: str = field(default_factory=lambda: os.getenv("BRIDE_NAME", "Bride"))
    groom_name: str = field(default_factory=lambda: os.getenv("GROOM_NAME", "Groom"))


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from rsvp_bot.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.wedding.date)
    """

    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)
    wedding: WeddingSettings = field(default_factory=WeddingSettings)

    data_dir: Path = field(
        default_factory=lambda: Path(os.getenv("WHATSAPP_DATA_DIR", "data"))
    )

    @property
    def guests_file(self) -> Path:
        return self.data_dir / "guests.json"

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        if self.whatsapp.provider not in (PROVIDER_SELENIUM, PROVIDER_CLOUD_API):
            issues.append(
                f"WARNING: Unknown MESSAGING_PROVIDER '{self.whatsapp.provider}'. "
                f"Use '{PROVIDER_SELENIUM}' or '{PROVIDER_CLOUD_API}'."
            )

        if self.whatsapp.provider == PROVIDER_CLOUD_API:
            if not self.whatsapp.api_key or not self.whatsapp.phone_number_id:
                issues.append(
                    "WARNING: WHATSAPP_API_KEY and WHATSAPP_PHONE_NUMBER_ID are required "
                    "for the Cloud API provider."
                )
            if not self.whatsapp.verify_token:
                issues.append(
                    "WARNING: WHATSAPP_VERIFY_TOKEN not set. "
                    "Webhook verification requests will be rejected."
                )

        if self.whatsapp.provider == PROVIDER_SELENIUM and self.whatsapp.poll_interval_seconds <= 0:
            issues.append(
                "WARNING: WHATSAPP_POLL_INTERVAL is 0. "
                "Replies are only picked up with the 'Check for replies' command."
            )

        if not self.whatsapp.default_country_code.isdigit():
            issues.append(
                f"WARNING: DEFAULT_COUNTRY_CODE '{self.whatsapp.default_country_code}' "
                "is not a numeric calling code."
            )

        if self.wedding.location == "Venue TBD":
            issues.append(
                "WARNING: WEDDING_LOCATION not set. Invitations will say 'Venue TBD'."
            )

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
