from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from servicehub.api.errors import HANDLED_ERRORS, http_error
from servicehub.dependencies.auth import AdminActor, CurrentActor
from servicehub.dependencies.services import TemplateServiceDep
from servicehub.templates import TemplateDefinition, TemplateRecipient
from servicehub.tickets.state import TicketStatus

router = APIRouter(prefix="/templates", tags=["templates"])


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    subject: str
    message: str
    recipient: TemplateRecipient
    status: TicketStatus
    is_active: bool
    variables: list[str]
    created_at: datetime
    updated_at: datetime


class TemplateCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    recipient: TemplateRecipient = TemplateRecipient.CLIENT
    status: TicketStatus
    variables: list[str] = Field(default_factory=list)


class TemplateUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    subject: str | None = Field(default=None, min_length=1, max_length=255)
    message: str | None = Field(default=None, min_length=1)
    recipient: TemplateRecipient | None = None
    status: TicketStatus | None = None
    is_active: bool | None = None
    variables: list[str] | None = None


class TemplatePreviewResponse(BaseModel):
    template_id: str
    ticket_id: str
    text: str
    phone: str | None
    link: str | None


@router.get("", response_model=list[TemplateResponse])
async def list_templates(
    service: TemplateServiceDep,
    actor: CurrentActor,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    recipient: TemplateRecipient | None = Query(default=None),
    active: bool = Query(default=False),
) -> list[TemplateResponse]:
    templates = await service.list_templates(status=status_filter, recipient=recipient, active_only=active)
    return [TemplateResponse.model_validate(item) for item in templates]


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: TemplateCreateRequest,
    service: TemplateServiceDep,
    actor: AdminActor,
) -> TemplateResponse:
    definition = TemplateDefinition(
        name=payload.name,
        subject=payload.subject,
        message=payload.message,
        status=payload.status,
        recipient=payload.recipient,
        variables=tuple(payload.variables),
    )
    try:
        template = await service.create_template(definition, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TemplateResponse.model_validate(template)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: str,
    payload: TemplateUpdateRequest,
    service: TemplateServiceDep,
    actor: AdminActor,
) -> TemplateResponse:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields provided for update")
    try:
        template = await service.update_template(template_id, changes, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TemplateResponse.model_validate(template)


@router.get("/{template_id}/preview", response_model=TemplatePreviewResponse)
async def preview_template(
    template_id: str,
    service: TemplateServiceDep,
    actor: CurrentActor,
    ticket_id: str = Query(..., min_length=1),
) -> TemplatePreviewResponse:
    try:
        preview = await service.preview(template_id, ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TemplatePreviewResponse(
        template_id=preview.template.id,
        ticket_id=ticket_id,
        text=preview.text,
        phone=preview.phone,
        link=preview.link,
    )
