from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Roles the lifecycle engine knows about."""

    ADMIN = "admin"
    TECHNICIAN = "technician"


@dataclass(frozen=True, slots=True)
class Actor:
    """Caller identity resolved for a single operation."""

    user_id: str
    role: Role
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_technician(self) -> bool:
        return self.role is Role.TECHNICIAN


@dataclass(slots=True)
class Profile:
    """Staff member of the service center."""

    user_id: str
    name: str
    role: str
    mobile: str | None = None
    email: str | None = None
    is_deleted: bool = False


@dataclass(slots=True)
class Customer:
    """Customer the device belongs to."""

    cust_id: str
    name: str
    mobile: str
    email: str | None = None
    address: str | None = None
    company: str | None = None
    is_deleted: bool = False


@dataclass(frozen=True, slots=True)
class CustomerDraft:
    """Fields supplied when registering a new customer."""

    name: str
    mobile: str
    email: str | None = None
    address: str | None = None
    company: str | None = None
