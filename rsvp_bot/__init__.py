# Wedding RSVP Bot - WhatsApp Invitations & Reply Tracking
# ========================================================
# Sends wedding invitations over WhatsApp and turns free-text replies
# into RSVP decisions, using Layered Architecture:
#
# ARCHITECTURE LAYERS:
# - Presentation:   CLI (run_bot.py) and webhook server (web/)
# - Application:    RSVP orchestration (invite, handle replies)
# - Domain:         Guest records, phone canonicalization, reply classification
# - Infrastructure: External services (WhatsApp, JSON store, guest list import)
#
# Messaging backends can be swapped (Selenium WhatsApp Web or the
# WhatsApp Cloud API) without touching the domain or application layers.
