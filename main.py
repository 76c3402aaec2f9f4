"""
Wedding RSVP Bot - Webhook Server Entry Point
=============================================

Run this to receive RSVP replies through the WhatsApp Cloud API:
    python main.py

Point the Meta webhook at http(s)://<host>/webhook and set
WHATSAPP_VERIFY_TOKEN to the same token.

To send invitations from the terminal:
    python run_bot.py
"""

import logging
import sys
from pathlib import Path

import uvicorn

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)


def main():
    """Start the webhook server."""
    print("\n" + "=" * 50)
    print("   Wedding RSVP Bot - Webhook Server")
    print("=" * 50)
    print("\n   Starting server at http://127.0.0.1:8000")
    print("   Press Ctrl+C to stop\n")

    uvicorn.run(
        "rsvp_bot.web.app:create_app",
        factory=True,
        host="127.0.0.1",
        port=8000,
        log_level="info"
    )


if __name__ == "__main__":
    main()
