"""
FastAPI Web Application - Webhook Server & Guest API
=====================================================

Receives WhatsApp Cloud API webhooks (inbound RSVP replies) and exposes a
small JSON API for the guest list.

Endpoints:
    GET  /webhook          Meta webhook verification handshake
    POST /webhook          Inbound messages (handled after the response)
    GET  /api/guests       All guests, or ?status=pending|accepted|declined|not_invited
    GET  /api/guests/{phone}  One guest (404 if not invited)
    GET  /api/stats        Guest counts per status
    POST /api/invitations  Send an invitation
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ..application import RSVPService
from ..domain.errors import DeliveryError, GuestNotFoundError, PersistenceError
from ..domain.models import RSVPStatus
from ..domain.phone import canonicalize_phone
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.persistence import GuestStore, guest_to_dict
from ..infrastructure.whatsapp import CloudAPIProvider, verify_signature

logger = logging.getLogger(__name__)


class InvitationRequest(BaseModel):
    phone: str
    name: str
    notes: Optional[str] = None


def create_app(
    service: Optional[RSVPService] = None,
    provider: Optional[CloudAPIProvider] = None,
    store: Optional[GuestStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the app. Anything not passed in is created from settings when
    the app starts: a Cloud API provider, the JSON guest store and the
    RSVP service wired to the provider's events.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = app.state
        owns_provider = state.provider is None

        if state.store is None:
            state.store = GuestStore(settings.guests_file)
        if state.provider is None:
            state.provider = CloudAPIProvider.from_settings(settings.whatsapp)
            if not state.provider.connect():
                logger.warning("Cloud API provider not connected; invitations will fail until it is")
        if state.service is None:
            state.service = RSVPService(
                state.provider,
                state.store,
                settings.wedding,
                country_code=settings.whatsapp.default_country_code,
            )
            state.provider.set_event_handler(state.service.handle_event)

        for issue in settings.validate():
            logger.warning(issue)
        logger.info("Webhook server ready")
        yield

        if owns_provider:
            state.provider.close()

    app = FastAPI(title="Wedding RSVP Bot", description="WhatsApp invitations and RSVP tracking", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.state.provider = provider
    app.state.store = store

    # ── Webhook ────────────────────────────────────────────────────

    @app.get("/webhook", response_class=PlainTextResponse)
    async def verify_webhook(
        mode: str = Query("", alias="hub.mode"),
        token: str = Query("", alias="hub.verify_token"),
        challenge: str = Query("", alias="hub.challenge"),
    ):
        expected = settings.whatsapp.verify_token
        if mode == "subscribe" and expected and token == expected:
            return challenge
        raise HTTPException(status_code=403, detail="Webhook verification failed")

    @app.post("/webhook")
    async def receive_webhook(request: Request, background_tasks: BackgroundTasks):
        body = await request.body()

        app_secret = settings.whatsapp.app_secret
        if app_secret:
            signature = request.headers.get("X-Hub-Signature-256", "")
            if not verify_signature(body, signature, app_secret):
                logger.warning("Rejected webhook with invalid signature")
                raise HTTPException(status_code=403, detail="Invalid signature")

        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")

        # Recording and confirming replies runs after the response is sent
        provider: CloudAPIProvider = request.app.state.provider
        received = provider.parse_webhook(payload)
        background_tasks.add_task(provider.dispatch_events, received)
        return {"status": "ok", "received": len(received)}

    # ── API ────────────────────────────────────────────────────────

    @app.get("/api/guests")
    async def api_list_guests(request: Request, status: Optional[RSVPStatus] = None):
        store: GuestStore = request.app.state.store
        guests = store.list_by_status(status) if status else store.list_all()
        return {"guests": [guest_to_dict(g) for g in guests]}

    @app.get("/api/guests/{phone}")
    async def api_get_guest(request: Request, phone: str):
        phone = canonicalize_phone(phone, settings.whatsapp.default_country_code)
        try:
            guest = request.app.state.store.get(phone)
        except GuestNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return guest_to_dict(guest)

    @app.get("/api/stats")
    async def api_stats(request: Request):
        return request.app.state.store.stats()

    @app.post("/api/invitations")
    def api_send_invitation(request: Request, invitation: InvitationRequest):
        svc: RSVPService = request.app.state.service
        try:
            guest = svc.send_invitation(invitation.phone, invitation.name, notes=invitation.notes)
        except DeliveryError as e:
            raise HTTPException(status_code=502, detail=str(e))
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return guest_to_dict(guest)

    return app
