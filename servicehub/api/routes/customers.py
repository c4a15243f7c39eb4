from __future__ import annotations

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field

from servicehub.api.errors import HANDLED_ERRORS, http_error
from servicehub.dependencies.auth import CurrentActor
from servicehub.dependencies.services import DirectoryDep
from servicehub.directory import CustomerDraft

router = APIRouter(prefix="/customers", tags=["customers"])


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cust_id: str
    name: str
    mobile: str
    email: str | None = None
    address: str | None = None
    company: str | None = None


class CustomerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    mobile: str = Field(..., min_length=1, max_length=32)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = None
    company: str | None = Field(default=None, max_length=255)


@router.get("", response_model=list[CustomerResponse])
async def search_customers(
    directory: DirectoryDep,
    actor: CurrentActor,
    q: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=50, ge=1, le=200),
) -> list[CustomerResponse]:
    try:
        customers = await directory.search_customers(q, limit=limit)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return [CustomerResponse.model_validate(item) for item in customers]


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreateRequest,
    directory: DirectoryDep,
    actor: CurrentActor,
) -> CustomerResponse:
    try:
        customer = await directory.create_customer(CustomerDraft(**payload.model_dump()))
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return CustomerResponse.model_validate(customer)
