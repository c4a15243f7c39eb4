from contextlib import asynccontextmanager

from fastapi import FastAPI

from servicehub.api.routes import chat, customers, notifications, ping, statuses, technicians, templates, tickets
from servicehub.assistant import ChatAssistant
from servicehub.core.config import Settings, get_settings
from servicehub.core.logging import configure_logging, init_tracer, shutdown_tracer
from servicehub.db import create_engine_from_dsn
from servicehub.directory import DirectoryRepository
from servicehub.notifications import (
    NotificationDispatcher,
    NotificationInbox,
    NotificationRepository,
    WhatsAppGateway,
)
from servicehub.storage import HttpObjectStorage
from servicehub.templates import TemplateRepository, TemplateService
from servicehub.tickets import ApprovalGate, TicketLifecycle, TicketRepository, TicketService


def _build_clients(settings: Settings) -> tuple[WhatsAppGateway | None, HttpObjectStorage, ChatAssistant]:
    gateway = None
    if settings.whatsapp_enabled:
        gateway = WhatsAppGateway(
            phone_number_id=settings.whatsapp_phone_number_id,
            access_token=settings.whatsapp_access_token,
            api_version=settings.whatsapp_api_version,
            base_url=settings.whatsapp_base_url,
            language_code=settings.whatsapp_language_code,
            timeout=settings.http_timeout,
        )
    storage = HttpObjectStorage(
        base_url=settings.storage_base_url,
        bucket=settings.storage_bucket,
        api_key=settings.storage_api_key,
        timeout=settings.http_timeout,
    )
    assistant = ChatAssistant(
        api_key=settings.chat_api_key,
        model=settings.chat_model,
        base_url=settings.chat_base_url,
        timeout=settings.http_timeout,
    )
    return gateway, storage, assistant


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.db_engine = None
    app.state.ticket_service = None

    gateway, storage, assistant = _build_clients(settings)
    app.state.chat_assistant = assistant

    db_engine = None
    try:
        db_engine, session_factory = create_engine_from_dsn(settings.database_url, echo=settings.database_echo)
        directory = DirectoryRepository(session_factory)
        ticket_repository = TicketRepository(session_factory, engine=db_engine)
        await ticket_repository.ensure_schema()

        inbox = NotificationInbox(NotificationRepository(session_factory))
        lifecycle = TicketLifecycle(ticket_repository)
        if gateway is not None:
            lifecycle.subscribe(
                NotificationDispatcher(gateway, directory, admin_phone_numbers=settings.admin_phone_numbers)
            )
        else:
            logger.warning("WhatsApp notifications are disabled")
        gate = ApprovalGate(lifecycle, directory, inbox)
        ticket_service = TicketService(
            ticket_repository,
            lifecycle,
            gate,
            inbox,
            directory,
            storage=storage,
            max_attachment_bytes=settings.attachment_max_bytes,
        )
        template_service = TemplateService(TemplateRepository(session_factory), ticket_service)
        await template_service.seed_defaults()

        app.state.db_engine = db_engine
        app.state.directory = directory
        app.state.notification_inbox = inbox
        app.state.ticket_service = ticket_service
        app.state.template_service = template_service
    except Exception:  # pragma: no cover - service initialisation best effort
        logger.exception("Ticket services could not be initialised")
        app.state.db_engine = None
        app.state.ticket_service = None
        if db_engine is not None:
            await db_engine.dispose()
            db_engine = None
    try:
        yield
    finally:
        if db_engine is not None:
            await db_engine.dispose()
        if gateway is not None:
            await gateway.close()
        await storage.close()
        await assistant.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(statuses.router)
    app.include_router(tickets.router)
    app.include_router(customers.router)
    app.include_router(technicians.router)
    app.include_router(notifications.router)
    app.include_router(templates.router)
    app.include_router(chat.router)
    return app


app = create_app()
