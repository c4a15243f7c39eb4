from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from servicehub.dependencies.auth import CurrentActor
from servicehub.dependencies.services import DirectoryDep

router = APIRouter(prefix="/technicians", tags=["technicians"])


class TechnicianResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str
    mobile: str | None = None


@router.get("", response_model=list[TechnicianResponse])
async def list_technicians(directory: DirectoryDep, actor: CurrentActor) -> list[TechnicianResponse]:
    """Technicians a ticket can be assigned to, ordered by name."""

    technicians = await directory.list_technicians()
    return [TechnicianResponse.model_validate(item) for item in technicians]
