from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from servicedesk.config import get_settings
from servicedesk.infrastructure.database import SessionLocal, engine, initialize_database
from servicedesk.infrastructure.email import send_email
from servicedesk.infrastructure.notifications import (
    PresenceRegistry,
    build_notification_service,
)
from servicedesk.interfaces.api.errors import register_exception_handlers
from servicedesk.interfaces.api.routes import register_routes

SHUTDOWN_DRAIN_SECONDS = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the tables on startup; finish pending deliveries on shutdown."""

    initialize_database()
    yield
    await app.state.notification_service.wait_for_deliveries(SHUTDOWN_DRAIN_SECONDS)
    engine.dispose()


def create_app(*, email_sender=send_email, push_gateway=None, sms_gateway=None) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="IT Service Desk", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    presence = PresenceRegistry()
    app.state.presence = presence
    app.state.notification_service = build_notification_service(
        settings,
        SessionLocal,
        presence,
        email_sender=email_sender,
        push_gateway=push_gateway,
        sms_gateway=sms_gateway,
    )

    register_exception_handlers(app)
    register_routes(app)
    return app


app = create_app()
