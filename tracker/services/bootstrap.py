from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tracker.api.handlers.deps import ApiDeps
from tracker.clients.resend import ResendEmailSender
from tracker.clients.stub import StubEmailSender, StubWhatsAppDispatcher
from tracker.clients.whatsapp import HttpWhatsAppDispatcher
from tracker.domain.contracts import EmailSender, SubmissionRepository, WhatsAppDispatcher
from tracker.notifications.catalog import MessageCatalog, default_catalog
from tracker.repositories.postgres import AsyncpgPoolManager, DatabaseInitializer, PostgresSubmissionRepository
from tracker.repositories.stub import InMemorySubmissionRepository
from tracker.services.seed import seed_demo_submissions
from tracker.settings import AppSettings, app_settings_from_env


@dataclass
class RuntimeContainer:
    settings: AppSettings
    mode: str
    repository: SubmissionRepository
    whatsapp: WhatsAppDispatcher
    email_sender: EmailSender
    catalog: MessageCatalog
    api_deps: ApiDeps
    initializer: DatabaseInitializer | None
    on_startup: Callable[[], Awaitable[None]] | None
    on_shutdown: Callable[[], Awaitable[None]] | None


def build_whatsapp_dispatcher(settings: AppSettings, catalog: MessageCatalog) -> WhatsAppDispatcher:
    if settings.environment == "development" and not settings.whatsapp_api_url:
        return StubWhatsAppDispatcher(catalog=catalog)
    return HttpWhatsAppDispatcher(
        api_url=settings.whatsapp_api_url,
        api_key=settings.whatsapp_api_key,
        catalog=catalog,
        timeout_seconds=float(settings.http_timeout_seconds),
    )


def build_email_sender(settings: AppSettings) -> EmailSender:
    if settings.environment == "development" and not settings.resend_api_key:
        return StubEmailSender()
    return ResendEmailSender(
        api_key=settings.resend_api_key,
        from_address=settings.resend_from,
        reply_to=settings.resend_reply_to,
        api_base=settings.resend_api_base,
        timeout_seconds=float(settings.http_timeout_seconds),
        max_retries=settings.email_max_retries,
        retry_delay_ms=settings.email_retry_delay_ms,
    )


def build_runtime_container(settings: AppSettings | None = None, *, seed_demo: bool = False) -> RuntimeContainer:
    settings = settings or app_settings_from_env()
    on_startup: Callable[[], Awaitable[None]] | None = None
    on_shutdown: Callable[[], Awaitable[None]] | None = None
    initializer: DatabaseInitializer | None = None
    repository: SubmissionRepository

    if settings.database_url:
        mode = "postgres"
        pool_manager = AsyncpgPoolManager(dsn=settings.database_url)
        repository = PostgresSubmissionRepository(pool_manager=pool_manager)
        if settings.database_auto_migrate:
            initializer = DatabaseInitializer(pool_manager=pool_manager)
        startup_initializer = initializer
        postgres_repository = repository

        async def _startup_postgres() -> None:
            await pool_manager.startup()
            if startup_initializer is not None:
                await startup_initializer.ensure_initialized()
            if seed_demo:
                await seed_demo_submissions(postgres_repository)

        on_startup = _startup_postgres
        on_shutdown = pool_manager.shutdown
    else:
        mode = "memory"
        repository = InMemorySubmissionRepository()
        if seed_demo:
            memory_repository = repository

            async def _startup_memory() -> None:
                await seed_demo_submissions(memory_repository)

            on_startup = _startup_memory

    catalog = default_catalog()
    whatsapp = build_whatsapp_dispatcher(settings, catalog)
    email_sender = build_email_sender(settings)
    api_deps = ApiDeps(
        settings=settings,
        repository=repository,
        whatsapp=whatsapp,
        email_sender=email_sender,
        catalog=catalog,
    )

    return RuntimeContainer(
        settings=settings,
        mode=mode,
        repository=repository,
        whatsapp=whatsapp,
        email_sender=email_sender,
        catalog=catalog,
        api_deps=api_deps,
        initializer=initializer,
        on_startup=on_startup,
        on_shutdown=on_shutdown,
    )
