from __future__ import annotations

import re
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicehub.db.models import CustomerTable, ProfileTable

from .errors import CustomerValidationError, DirectoryError, DuplicateCustomerError
from .models import Customer, CustomerDraft, Profile, Role

_MOBILE_CHARS = re.compile(r"^\+?[\d\s()-]+$")


class DirectoryRepository:
    """Access to staff profiles and customers. Soft-deleted rows are hidden."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_profile(self, user_id: str) -> Profile | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProfileTable).where(
                    ProfileTable.user_id == user_id,
                    ProfileTable.is_deleted == False,  # noqa: E712
                )
            )
            row = result.scalars().first()
            return self._table_to_profile(row) if row is not None else None

    async def list_profiles(self, *, role: Role | str | None = None) -> list[Profile]:
        query = select(ProfileTable).where(ProfileTable.is_deleted == False)  # noqa: E712
        if role is not None:
            query = query.where(ProfileTable.role == (role.value if isinstance(role, Role) else role))
        async with self._session_factory() as session:
            result = await session.execute(query.order_by(ProfileTable.name.asc()))
            return [self._table_to_profile(row) for row in result.scalars().all()]

    async def list_admins(self) -> list[Profile]:
        return await self.list_profiles(role=Role.ADMIN)

    async def list_technicians(self) -> list[Profile]:
        return await self.list_profiles(role=Role.TECHNICIAN)

    async def get_customer(self, cust_id: str) -> Customer | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CustomerTable).where(
                    CustomerTable.cust_id == cust_id,
                    CustomerTable.is_deleted == False,  # noqa: E712
                )
            )
            row = result.scalars().first()
            return self._table_to_customer(row) if row is not None else None

    async def search_customers(self, term: str | None = None, *, limit: int = 50) -> list[Customer]:
        """Live customers whose name or mobile contains ``term``, ordered by name."""

        query = select(CustomerTable).where(CustomerTable.is_deleted == False)  # noqa: E712
        needle = (term or "").strip()
        if needle:
            query = query.where(
                or_(
                    CustomerTable.name.icontains(needle, autoescape=True),
                    CustomerTable.mobile.contains(needle, autoescape=True),
                )
            )
        async with self._session_factory() as session:
            result = await session.execute(query.order_by(CustomerTable.name.asc()).limit(limit))
            return [self._table_to_customer(row) for row in result.scalars().all()]

    async def create_customer(self, draft: CustomerDraft) -> Customer:
        """Register a customer.

        Names are stored in capitals. The mobile must hold 10 to 15 digits and
        must not belong to another live customer.
        """

        name = draft.name.strip().upper()
        mobile = draft.mobile.strip()
        if not name:
            raise CustomerValidationError("Customer name is required")
        digits = re.sub(r"\D", "", mobile)
        if not _MOBILE_CHARS.match(mobile) or not 10 <= len(digits) <= 15:
            raise CustomerValidationError(f"Invalid mobile number {draft.mobile!r}")

        now = datetime.now(timezone.utc)
        row = CustomerTable(
            name=name,
            mobile=mobile,
            email=(draft.email or "").strip() or None,
            address=(draft.address or "").strip() or None,
            company=(draft.company or "").strip() or None,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    existing = await session.execute(
                        select(CustomerTable.cust_id).where(
                            CustomerTable.mobile == mobile,
                            CustomerTable.is_deleted == False,  # noqa: E712
                        )
                    )
                    if existing.first() is not None:
                        raise DuplicateCustomerError(f"A customer with mobile {mobile} already exists")
                    session.add(row)
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Customer store rejected the write: {exc}") from exc
        return self._table_to_customer(row)

    @staticmethod
    def _table_to_profile(row: ProfileTable) -> Profile:
        return Profile(
            user_id=row.user_id,
            name=row.name,
            role=row.role,
            mobile=row.mobile,
            email=row.email,
            is_deleted=bool(row.is_deleted),
        )

    @staticmethod
    def _table_to_customer(row: CustomerTable) -> Customer:
        return Customer(
            cust_id=row.cust_id,
            name=row.name,
            mobile=row.mobile,
            email=row.email,
            address=row.address,
            company=row.company,
            is_deleted=bool(row.is_deleted),
        )
