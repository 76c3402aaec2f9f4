from .settings import Settings, WeddingSettings, WhatsAppSettings, get_settings

__all__ = ["Settings", "WeddingSettings", "WhatsAppSettings", "get_settings"]
