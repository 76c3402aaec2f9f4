# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - whatsapp/: Selenium WhatsApp Web automation and WhatsApp Cloud API
# - persistence/: JSON file guest store
# - importer/: CSV/Excel guest list import
# - config/: Environment and settings management
#
# This layer can be replaced entirely without affecting domain/application layers.
