"""Application entry point for the llmbox HTTP service.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error reporting through structlog when a DSN is configured
- **Services**: SQLite store, address router, thread formatter, Anthropic
  generator, SendGrid sender, and the three pipelines built on them
- **FastAPI** routers for the email webhook, signup and batch trigger, plus
  health, readiness and Prometheus metrics endpoints
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from llmbox.api import batch_router, signup_router, webhook_router
from llmbox.assistant import AssistantResponder
from llmbox.config import Settings, get_settings, validate_credentials
from llmbox.delivery.sendgrid import SendGridSender
from llmbox.email.routing import AddressRouter
from llmbox.email.threading import ThreadFormatter
from llmbox.health import register_health_routes
from llmbox.llm.client import get_anthropic_client
from llmbox.llm.generator import AnthropicGenerator
from llmbox.observability.metrics import setup_metrics
from llmbox.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from llmbox.observability.sentry import get_sentry_processor, init_sentry
from llmbox.personifeed.batch import BatchDispatcher
from llmbox.personifeed.reply import FeedbackProcessor
from llmbox.store.schema import init_personalization_tables, open_database
from llmbox.store.sqlite import SQLitePersonalizationStore

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry_enabled: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode: JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Forward ERROR events to Sentry.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())
    shared_processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up all shared services for the application.

    The generator and sender are only created when their API keys are set;
    the pipelines that need them are left as ``None`` otherwise and the
    corresponding endpoints report themselves as not configured.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    # a. SQLite personalization store
    db_path = settings.database_path
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    db_conn = open_database(db_path)
    init_personalization_tables(db_conn)
    services["db_conn"] = db_conn
    store = SQLitePersonalizationStore(db_conn)
    services["store"] = store

    # b. Routing and formatting share one config
    routing_config = settings.routing_config()
    services["router"] = AddressRouter(routing_config)
    formatter = ThreadFormatter(routing_config)
    services["formatter"] = formatter

    # c. Anthropic generator (if API key available)
    generator = None
    anthropic_key = settings.anthropic_api_key.get_secret_value()
    if anthropic_key:
        generator = AnthropicGenerator(
            client=get_anthropic_client(anthropic_key),
            model=settings.generation_model,
            max_tokens=settings.generation_max_tokens,
        )
        logger.info("generator_initialized", model=settings.generation_model)
    else:
        logger.info("ANTHROPIC_API_KEY not set, content generation disabled")
    services["generator"] = generator

    # d. SendGrid sender (if API key available)
    sender = None
    sendgrid_key = settings.sendgrid_api_key.get_secret_value()
    if sendgrid_key:
        sender = SendGridSender(sendgrid_key, timeout=settings.sendgrid_timeout_seconds)
        logger.info("sender_initialized")
    else:
        logger.info("SENDGRID_API_KEY not set, outbound email disabled")
    services["sender"] = sender

    # e. Pipelines
    services["feedback_processor"] = FeedbackProcessor(store, sender, formatter)
    if generator is not None and sender is not None:
        services["responder"] = AssistantResponder(generator, sender, formatter)
        services["dispatcher"] = BatchDispatcher(
            store,
            generator,
            sender,
            formatter,
            concurrency=settings.batch_concurrency,
        )
    else:
        services["responder"] = None
        services["dispatcher"] = None

    return services


def close_services(services: dict[str, Any]) -> None:
    """Release the database connection and HTTP client."""
    sender = services.get("sender")
    if sender is not None:
        sender.close()
    db_conn = services.get("db_conn")
    if db_conn is not None:
        db_conn.close()
        logger.info("Database connection closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager: closes shared services on shutdown."""
    logger.info("FastAPI application starting")
    yield
    close_services(app.state.services)


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with all routers and middleware.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="llmbox", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings") or get_settings()
    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(webhook_router)
    fastapi_app.include_router(signup_router)
    fastapi_app.include_router(batch_router)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)
    return fastapi_app


def main() -> None:
    """Main entry point: configure, initialize and serve over uvicorn."""
    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn,
        environment="production" if settings.production else "development",
    )
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    uvicorn.run(
        fastapi_app,
        host="0.0.0.0",
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
