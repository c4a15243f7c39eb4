from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from servicehub.tickets.state import StatusRegistry, TicketStatus

router = APIRouter(prefix="/statuses", tags=["statuses"])


class StatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: TicketStatus
    label: str
    color: str
    order: int
    terminal: bool


@router.get("", response_model=list[StatusResponse], summary="Registered ticket statuses in display order")
async def list_statuses() -> list[StatusResponse]:
    return [StatusResponse.model_validate(entry) for entry in StatusRegistry.entries()]
