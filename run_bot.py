"""
RSVP Bot Runner - Interactive Invitation Console
================================================

Sends wedding invitations and shows who has answered.

With the Selenium provider (default) pending guests' chats are checked for
replies in the background every WHATSAPP_POLL_INTERVAL seconds; the
"Check for replies" command checks them right away.

With MESSAGING_PROVIDER=cloud_api replies arrive through the webhook
server (python main.py) instead.
"""

import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rsvp_bot.application import RSVPService
from rsvp_bot.domain import PersistenceError, RSVPBotError, RSVPStatus
from rsvp_bot.infrastructure.config import get_settings
from rsvp_bot.infrastructure.config.settings import PROVIDER_CLOUD_API
from rsvp_bot.infrastructure.importer import GuestListParser
from rsvp_bot.infrastructure.persistence import GuestStore
from rsvp_bot.infrastructure.whatsapp import CloudAPIProvider, SeleniumProvider

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

STATUS_CHOICES = {
    "1": RSVPStatus.PENDING,
    "2": RSVPStatus.ACCEPTED,
    "3": RSVPStatus.DECLINED,
}


def connect_provider(settings):
    """Connect the configured messaging provider. Returns None on failure."""
    if settings.whatsapp.provider == PROVIDER_CLOUD_API:
        provider = CloudAPIProvider.from_settings(settings.whatsapp)
        if not provider.connect():
            print("Failed to connect to the WhatsApp Cloud API. Check WHATSAPP_API_KEY / WHATSAPP_PHONE_NUMBER_ID.")
            return None
        return provider

    print("Launching WhatsApp Web...")
    print("   Please scan QR code with your phone.\n")

    provider = SeleniumProvider(headless=settings.whatsapp.headless)
    if not provider.connect():
        print("Failed to launch browser")
        return None

    print("=" * 60)
    print("SCAN THE QR CODE NOW")
    print("   Wait for chats to load, then press ENTER")
    print("=" * 60)

    try:
        input("\n>>> Press ENTER when WhatsApp is ready... <<<\n")
    except KeyboardInterrupt:
        print("\nCancelled")
        provider.close()
        return None

    if not provider.confirm_login(timeout=30):
        print("WhatsApp didn't load. Try again.")
        provider.close()
        return None

    return provider


def print_guests(guests, show_status: bool = True):
    print("-" * 60)
    for guest in guests:
        print(f"Name: {guest.name}")
        print(f"Phone: {guest.phone_number}")
        if show_status:
            print(f"Status: {guest.rsvp_status.value}")
        if guest.rsvp_date:
            print(f"RSVP Date: {guest.rsvp_date.strftime('%Y-%m-%d %H:%M:%S')}")
        if guest.notes:
            print(f"Notes: {guest.notes}")
        print("-" * 60)


def send_invitation(service: RSVPService):
    name = input("Enter guest name: ").strip()
    phone = input("Enter phone number (e.g., 050-111-2222 or +972501112222): ").strip()
    if not name or not phone:
        print("Name and phone are required.")
        return

    print(f"\nSending invitation to {name} ({phone})...")
    try:
        guest = service.send_invitation(phone, name)
    except PersistenceError as e:
        print(f"Invitation not saved to disk: {e}")
    except RSVPBotError as e:
        print(f"Error sending invitation: {e}")
    else:
        print(f"Invitation sent successfully! (status: {guest.rsvp_status.value})")


def view_all_guests(store: GuestStore):
    guests = store.list_all()
    if not guests:
        print("\nNo guests found.")
        return

    stats = store.stats()
    print(f"\nAll Guests ({stats['total']} total | "
          f"Pending: {stats['pending']} | Accepted: {stats['accepted']} | Declined: {stats['declined']}):")
    print_guests(guests)


def view_guests_by_status(store: GuestStore):
    print("\nSelect status:")
    print("  1. Pending")
    print("  2. Accepted")
    print("  3. Declined")

    status = STATUS_CHOICES.get(input("Enter choice (1-3): ").strip())
    if status is None:
        print("Invalid choice.")
        return

    guests = store.list_by_status(status)
    if not guests:
        print(f"\nNo guests with status '{status.value}'.")
        return

    print(f"\nGuests with status '{status.value}' ({len(guests)} total):")
    print_guests(guests, show_status=False)


def import_guest_list(service: RSVPService):
    path = input("Path to guest list (.xlsx, .xls or .csv): ").strip().strip('"')
    try:
        guests, columns = GuestListParser().parse(path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Could not read guest list: {e}")
        return

    print(f"\nFound {len(guests)} guests (columns: {columns})")
    if not guests or input("Send invitations to all of them? (y/N): ").strip().lower() != "y":
        return

    result = service.send_invitations(guests)
    print(f"\nSent: {result['sent']} | Failed: {result['failed']}")
    for error in result["errors"]:
        print(f"   {error}")


def pending_phones(store: GuestStore):
    return [g.phone_number for g in store.list_by_status(RSVPStatus.PENDING)]


def check_replies(provider, store: GuestStore):
    if not isinstance(provider, SeleniumProvider):
        print("Replies arrive through the webhook server (python main.py).")
        return

    pending = pending_phones(store)
    if not pending:
        print("No pending guests.")
        return

    print(f"Checking {len(pending)} chats...")
    count = provider.poll_replies(pending)
    print(f"Processed {count} new messages.")


def run_bot():
    print("\n" + "=" * 60)
    print("   Wedding WhatsApp RSVP Bot")
    print("=" * 60 + "\n")

    settings = get_settings()
    for issue in settings.validate():
        print(issue)

    try:
        store = GuestStore(settings.guests_file)
    except PersistenceError as e:
        print(f"Error initializing storage: {e}")
        sys.exit(1)

    provider = connect_provider(settings)
    if provider is None:
        sys.exit(1)

    service = RSVPService(
        provider,
        store,
        settings.wedding,
        country_code=settings.whatsapp.default_country_code,
    )
    provider.set_event_handler(service.handle_event)

    print("\nConnected to WhatsApp!\n")

    interval = settings.whatsapp.poll_interval_seconds
    if isinstance(provider, SeleniumProvider) and interval > 0:
        provider.start_polling(lambda: pending_phones(store), interval)
        print(f"Checking pending guests for replies every {interval}s.\n")

    commands = {
        "1": lambda: send_invitation(service),
        "2": lambda: view_all_guests(store),
        "3": lambda: view_guests_by_status(store),
        "4": lambda: import_guest_list(service),
        "5": lambda: check_replies(provider, store),
    }

    try:
        while True:
            print("\nCommands:")
            print("  1. Send invitation")
            print("  2. View all guests")
            print("  3. View guests by status")
            print("  4. Import guest list")
            print("  5. Check for replies")
            print("  6. Exit")

            command = input("\nEnter command (1-6): ").strip()
            if command == "6":
                print("Exiting...")
                break

            action = commands.get(command)
            if action is None:
                print("Invalid command. Please try again.")
                continue
            action()
    except (KeyboardInterrupt, EOFError):
        print("\n\nShutting down...")
    finally:
        provider.close()
        print("Goodbye!")


if __name__ == "__main__":
    run_bot()
