from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import Base64Bytes, BaseModel, ConfigDict, Field

from servicehub.api.errors import HANDLED_ERRORS, http_error
from servicehub.api.schemas import DeviceModel, TicketResponse, TransitionResponse
from servicehub.dependencies.auth import AdminActor, CurrentActor
from servicehub.dependencies.services import TicketServiceDep
from servicehub.tickets.models import (
    AttachmentUpload,
    DeviceDetails,
    IssueType,
    TicketDraft,
    TicketPriority,
    TicketType,
)
from servicehub.tickets.state import StatusRegistry, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    issue_type: IssueType = IssueType.HARDWARE
    ticket_type: TicketType = TicketType.CUSTOMER
    priority: TicketPriority = TicketPriority.MEDIUM
    device: DeviceModel = Field(default_factory=DeviceModel)
    technician_id: str | None = None
    comment: str | None = None

    def to_draft(self) -> TicketDraft:
        return TicketDraft(
            title=self.title,
            description=self.description,
            customer_id=self.customer_id,
            issue_type=self.issue_type,
            ticket_type=self.ticket_type,
            priority=self.priority,
            device=DeviceDetails(
                device_type=self.device.device_type,
                device_brand=self.device.device_brand,
                serial_number=self.device.serial_number,
                device_status=self.device.device_status,
            ),
            technician_id=self.technician_id or None,
            comment=self.comment,
        )


class TicketStatusChangeRequest(BaseModel):
    status: TicketStatus
    metadata: dict[str, Any] = Field(default_factory=dict)


class TicketAssignRequest(BaseModel):
    technician_id: str = Field(..., min_length=1)


class AttachmentRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(default="application/octet-stream", max_length=255)
    content: Base64Bytes


class RemarkCreateRequest(BaseModel):
    text: str | None = None
    attachments: list[AttachmentRequest] = Field(default_factory=list)


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    path: str
    content_type: str
    size: int


class RemarkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    author_id: str
    text: str
    created_at: datetime
    attachments: list[AttachmentResponse]


class TicketAuditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    action: str
    actor: str
    from_status: TicketStatus | None
    to_status: TicketStatus | None
    metadata: dict[str, Any]
    created_at: datetime


class StatusCountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: TicketStatus
    label: str
    count: int


class TransitionOption(BaseModel):
    status: TicketStatus
    label: str


@router.post("", response_model=TransitionResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TransitionResponse:
    try:
        result = await service.create_ticket(payload.to_draft(), actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TransitionResponse.from_result(result)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    actor: CurrentActor,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    technician_id: str | None = Query(default=None),
    customer_id: str | None = Query(default=None),
    needs_approval: bool | None = Query(default=None),
    include_archived: bool = Query(default=False),
) -> list[TicketResponse]:
    tickets = await service.list_tickets(
        actor,
        status=status_filter,
        technician_id=technician_id,
        customer_id=customer_id,
        needs_approval=needs_approval,
        include_archived=include_archived,
    )
    return [TicketResponse.model_validate(ticket) for ticket in tickets]


@router.get("/summary", response_model=list[StatusCountResponse])
async def ticket_summary(
    service: TicketServiceDep,
    actor: CurrentActor,
    include_archived: bool = Query(default=False),
) -> list[StatusCountResponse]:
    rows = await service.status_summary(actor, include_archived=include_archived)
    return [StatusCountResponse.model_validate(row) for row in rows]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: str, service: TicketServiceDep, actor: CurrentActor) -> TicketResponse:
    try:
        ticket = await service.get_ticket(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TicketResponse.model_validate(ticket)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(ticket_id: str, service: TicketServiceDep, actor: AdminActor) -> None:
    try:
        await service.delete_ticket(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/{ticket_id}/status", response_model=TransitionResponse)
async def change_ticket_status(
    ticket_id: str,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TransitionResponse:
    try:
        result = await service.change_status(ticket_id, actor, payload.status, metadata=payload.metadata)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TransitionResponse.from_result(result)


@router.post("/{ticket_id}/assign", response_model=TransitionResponse)
async def assign_ticket(
    ticket_id: str,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    actor: AdminActor,
) -> TransitionResponse:
    try:
        result = await service.assign_technician(ticket_id, actor, payload.technician_id)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TransitionResponse.from_result(result)


@router.post("/{ticket_id}/approve", response_model=TransitionResponse)
async def approve_ticket(ticket_id: str, service: TicketServiceDep, actor: AdminActor) -> TransitionResponse:
    try:
        result = await service.approve(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TransitionResponse.from_result(result)


@router.post("/{ticket_id}/reject", response_model=TransitionResponse)
async def reject_ticket(ticket_id: str, service: TicketServiceDep, actor: AdminActor) -> TransitionResponse:
    try:
        result = await service.reject(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TransitionResponse.from_result(result)


@router.post("/{ticket_id}/archive", response_model=TransitionResponse)
async def archive_ticket(ticket_id: str, service: TicketServiceDep, actor: AdminActor) -> TransitionResponse:
    try:
        result = await service.archive_ticket(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return TransitionResponse.from_result(result)


@router.get("/{ticket_id}/transitions", response_model=list[TransitionOption])
async def allowed_transitions(ticket_id: str, service: TicketServiceDep, actor: CurrentActor) -> list[TransitionOption]:
    try:
        targets = await service.allowed_transitions(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return [TransitionOption(status=target, label=StatusRegistry.label_of(target)) for target in targets]


@router.get("/{ticket_id}/audit", response_model=list[TicketAuditResponse])
async def ticket_audit_log(ticket_id: str, service: TicketServiceDep, actor: CurrentActor) -> list[TicketAuditResponse]:
    try:
        entries = await service.get_audit_log(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return [TicketAuditResponse.model_validate(entry) for entry in entries]


@router.get("/{ticket_id}/remarks", response_model=list[RemarkResponse])
async def list_remarks(ticket_id: str, service: TicketServiceDep, actor: CurrentActor) -> list[RemarkResponse]:
    try:
        remarks = await service.list_remarks(ticket_id, actor)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return [RemarkResponse.model_validate(remark) for remark in remarks]


@router.post("/{ticket_id}/remarks", response_model=RemarkResponse, status_code=status.HTTP_201_CREATED)
async def add_remark(
    ticket_id: str,
    payload: RemarkCreateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> RemarkResponse:
    if not (payload.text or "").strip() and not payload.attachments:
        raise HTTPException(status_code=400, detail="A remark needs text or at least one attachment")
    uploads = [
        AttachmentUpload(name=item.name, content=item.content, content_type=item.content_type)
        for item in payload.attachments
    ]
    try:
        remark = await service.add_remark(ticket_id, actor, payload.text, uploads)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return RemarkResponse.model_validate(remark)
