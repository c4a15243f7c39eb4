"""Logging and tracing setup for ServiceHub.

Application loggers live under ``servicehub``. Chatty client libraries are
held at WARNING or above. ``Settings.log_levels`` can raise or lower any
single logger, for example ``servicehub.notifications`` while chasing a
WhatsApp delivery problem.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from servicehub import __version__
from servicehub.core.config import Settings

APP_LOGGER = "servicehub"
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "opentelemetry")

_TRACER_INITIALISED = False


def parse_headers(header_string: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` into a header mapping, skipping malformed items."""

    if not header_string:
        return {}
    headers: dict[str, str] = {}
    for item in header_string.split(","):
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            continue
        headers[key.strip()] = value.strip()
    return headers


def _level(name: str, default: int) -> int:
    value = getattr(logging, name.upper(), None)
    return value if isinstance(value, int) else default


def logger_levels(settings: Settings) -> dict[str, int]:
    """Effective level per named logger, overrides applied last."""

    level = _level(settings.log_level, logging.INFO)
    levels = {name: max(level, logging.WARNING) for name in QUIET_LOGGERS}
    levels[APP_LOGGER] = level
    for name, override in settings.log_levels.items():
        levels[name] = _level(override, level)
    return levels


def configure_logging(settings: Settings) -> logging.Logger:
    """Install the root handler and per-logger levels; return the ``servicehub`` logger."""

    level = _level(settings.log_level, logging.INFO)
    loggers: dict[str, Any] = {name: {"level": value} for name, value in logger_levels(settings).items()}
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": settings.log_format},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": loggers,
        }
    )
    logger = logging.getLogger(APP_LOGGER)
    logger.debug("Logging configured for %s (%s)", settings.app_name, settings.environment)
    return logger


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP/HTTP tracer provider when tracing is enabled."""

    global _TRACER_INITIALISED

    if _TRACER_INITIALISED or not settings.otel_enabled:
        return None

    provider = TracerProvider(
        resource=Resource(
            attributes={
                "service.name": settings.otel_service_name,
                "service.version": __version__,
                "deployment.environment": settings.environment,
            }
        )
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        headers=parse_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _TRACER_INITIALISED = True
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    global _TRACER_INITIALISED

    if provider is None:
        return
    provider.shutdown()
    _TRACER_INITIALISED = False
