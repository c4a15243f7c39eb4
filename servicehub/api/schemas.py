"""Response models shared by the routers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from servicehub.notifications import DispatchReport
from servicehub.tickets import TransitionResult
from servicehub.tickets.models import DeviceStatus, IssueType, TicketPriority, TicketType
from servicehub.tickets.state import TicketStatus


class DeviceModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    device_type: str = Field(default="", max_length=50)
    device_brand: str = Field(default="", max_length=255)
    serial_number: str = Field(default="", max_length=255)
    device_status: DeviceStatus = DeviceStatus.WORKING


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    customer_id: str
    technician_id: str | None
    created_by: str
    issue_type: IssueType
    ticket_type: TicketType
    priority: TicketPriority
    device: DeviceModel
    status: TicketStatus
    needs_approval: bool
    archived: bool
    comment: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class NotificationFailureModel(BaseModel):
    recipient: str | None = None
    template: str | None = None
    error: str


class DispatchSummaryModel(BaseModel):
    delivered: int = 0
    failures: list[NotificationFailureModel] = Field(default_factory=list)

    @classmethod
    def from_reports(cls, reports: list[Any]) -> "DispatchSummaryModel":
        summary = cls()
        for report in reports:
            if not isinstance(report, DispatchReport):
                continue
            summary.delivered += len(report.delivered)
            summary.failures.extend(
                NotificationFailureModel(
                    recipient=failure.job.recipient_class.value if failure.job else None,
                    template=failure.job.template if failure.job else None,
                    error=failure.error,
                )
                for failure in report.failures
            )
        return summary


class TransitionResponse(BaseModel):
    ticket: TicketResponse
    from_status: TicketStatus | None
    to_status: TicketStatus
    action: str
    notifications: DispatchSummaryModel

    @classmethod
    def from_result(cls, result: TransitionResult) -> "TransitionResponse":
        return cls(
            ticket=TicketResponse.model_validate(result.ticket),
            from_status=result.event.from_status,
            to_status=result.event.to_status,
            action=result.event.action,
            notifications=DispatchSummaryModel.from_reports(result.reports),
        )
