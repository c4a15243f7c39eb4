"""WhatsApp message templates offered per ticket status."""

from .models import DEFAULT_TEMPLATES, TemplateDefinition, TemplateRecipient, WhatsAppTemplate
from .repository import TemplateRepository
from .service import (
    TemplateContext,
    TemplateNotFoundError,
    TemplatePreview,
    TemplateService,
    render,
    whatsapp_link,
)

__all__ = [
    "DEFAULT_TEMPLATES",
    "TemplateContext",
    "TemplateDefinition",
    "TemplateNotFoundError",
    "TemplatePreview",
    "TemplateRecipient",
    "TemplateRepository",
    "TemplateService",
    "WhatsAppTemplate",
    "render",
    "whatsapp_link",
]
