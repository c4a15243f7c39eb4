from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from servicehub.db import CustomerTable, ProfileTable, create_engine_from_dsn, create_schema
from servicehub.directory import Actor, Role
from servicehub.tickets.models import DeviceDetails, IssueType, Ticket, TicketPriority, TicketType
from servicehub.tickets.state import TicketStatus

BASE_TIME = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin-1", role=Role.ADMIN, name="Asha Admin")


@pytest.fixture
def technician() -> Actor:
    return Actor(user_id="tech-1", role=Role.TECHNICIAN, name="Tariq Tech")


@pytest.fixture
def other_technician() -> Actor:
    return Actor(user_id="tech-2", role=Role.TECHNICIAN, name="Nina Tech")


@pytest.fixture
def ticket_factory():
    counter = {"value": 0}

    def build(**overrides) -> Ticket:
        counter["value"] += 1
        created = BASE_TIME + timedelta(minutes=counter["value"])
        values = dict(
            id=str(uuid4()),
            title="Laptop does not boot",
            description="Black screen after the logo",
            customer_id="cust-1",
            technician_id=None,
            created_by="admin-1",
            issue_type=IssueType.HARDWARE,
            ticket_type=TicketType.CUSTOMER,
            priority=TicketPriority.HIGH,
            device=DeviceDetails(device_type="LAPTOP", device_brand="Dell", serial_number="SN-1"),
            status=TicketStatus.IN_QUEUE,
            needs_approval=False,
            is_deleted=False,
            archived=False,
            created_at=created,
            updated_at=created,
            version=1,
        )
        values.update(overrides)
        return Ticket(**values)

    return build


@pytest_asyncio.fixture
async def session_factory():
    engine, factory = create_engine_from_dsn(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    async with factory() as session:
        async with session.begin():
            session.add_all(
                [
                    ProfileTable(user_id="admin-1", name="Asha Admin", role="admin", mobile="+91 90000 00001"),
                    ProfileTable(user_id="admin-2", name="Bilal Admin", role="admin", mobile=None),
                    ProfileTable(user_id="tech-1", name="Tariq Tech", role="technician", mobile="+91 90000 00002"),
                    ProfileTable(user_id="tech-2", name="Nina Tech", role="technician", mobile="+91 90000 00003"),
                    ProfileTable(user_id="acct-1", name="Ravi Accounts", role="accountant"),
                    ProfileTable(user_id="gone-1", name="Old Tech", role="technician", is_deleted=True),
                    CustomerTable(cust_id="cust-1", name="Meera Shah", mobile="+91 98765 43210"),
                    CustomerTable(cust_id="cust-2", name="Arjun Rao", mobile="+91 91234 56789"),
                ]
            )
    yield factory
    await engine.dispose()
