"""Economic group data-access layer.

Pure persistence: no business rules, no HTTP concerns. The repository never
raises application errors; driver and ORM exceptions bubble up untouched and
are translated at the HTTP boundary. It never commits either: the request
session (see db/session.py) owns the transaction.
"""

from sqlalchemy import ColumnElement, Select, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kontaflow.constants import DEFAULT_ACCOUNTING_CONFIGURATION, Role
from kontaflow.models import (
    AccountingConfiguration,
    ChartOfAccounts,
    Company,
    EconomicGroup,
    UserGroupMembership,
)
from kontaflow.schemas.group import GroupCreate, GroupListQuery, GroupUpdate
from kontaflow.schemas.pagination import Paginated


class GroupRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_many(
        self, filters: GroupListQuery, member_id: int | None = None
    ) -> Paginated[EconomicGroup]:
        """Return one page of groups matching ``filters``.

        Each group gets a ``company_count`` attribute for the list response.
        ``member_id`` restricts the result to groups that user belongs to.
        """
        clauses = self._filter_clauses(filters, member_id)

        company_count = (
            select(func.count(Company.id))
            .where(Company.group_id == EconomicGroup.id)
            .correlate(EconomicGroup)
            .scalar_subquery()
        )
        page_stmt = (
            select(
                EconomicGroup,
                company_count.label("company_count"),
                func.count().over().label("total"),
            )
            .where(*clauses)
            .order_by(EconomicGroup.created_at.desc(), EconomicGroup.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        rows = (await self.db.execute(page_stmt)).all()
        if rows:
            total = rows[0].total
        elif filters.page == 1:
            total = 0
        else:
            # A page past the end carries no window total
            count_stmt = select(func.count(EconomicGroup.id)).where(*clauses)
            total = (await self.db.execute(count_stmt)).scalar_one()

        groups: list[EconomicGroup] = []
        for group, count, _ in rows:
            group.company_count = count  # type: ignore[attr-defined]
            groups.append(group)

        return Paginated(items=groups, page=filters.page, limit=filters.limit, total=total)

    @staticmethod
    def _filter_clauses(
        filters: GroupListQuery, member_id: int | None
    ) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if filters.search:
            clauses.append(
                or_(
                    EconomicGroup.name.icontains(filters.search, autoescape=True),
                    EconomicGroup.controller_tax_id.icontains(filters.search, autoescape=True),
                )
            )
        if filters.active is not None:
            clauses.append(EconomicGroup.active == filters.active)
        if filters.primary_country:
            clauses.append(EconomicGroup.primary_country == filters.primary_country)
        if member_id is not None:
            clauses.append(EconomicGroup.memberships.any(UserGroupMembership.user_id == member_id))
        return clauses

    @staticmethod
    def _select_with_relations(
        group_id: int, *, configuration: bool = True
    ) -> Select[tuple[EconomicGroup]]:
        # populate_existing refreshes instances already in the identity map
        # (e.g. right after an INSERT or a bulk UPDATE in the same session)
        loaders = [
            selectinload(EconomicGroup.companies),
            selectinload(EconomicGroup.chart_of_accounts),
        ]
        if configuration:
            loaders.append(selectinload(EconomicGroup.configuration))
        return (
            select(EconomicGroup)
            .where(EconomicGroup.id == group_id)
            .options(*loaders)
            .execution_options(populate_existing=True)
        )

    async def find_by_id(self, group_id: int) -> EconomicGroup | None:
        """Return the group with companies, chart of accounts and configuration, or None."""
        result = await self.db.execute(self._select_with_relations(group_id))
        return result.scalar_one_or_none()

    async def find_by_user_id(self, user_id: int) -> list[EconomicGroup]:
        """Return every group the user is a member of, alphabetically."""
        stmt = (
            select(EconomicGroup)
            .where(EconomicGroup.memberships.any(UserGroupMembership.user_id == user_id))
            .order_by(EconomicGroup.name.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create(self, data: GroupCreate, creator_user_id: int) -> EconomicGroup:
        """Insert a group plus its ADMIN membership, default configuration and chart of accounts.

        The four rows are flushed inside the caller's transaction, so they are
        committed together or rolled back together.
        """
        group = EconomicGroup(
            name=data.name,
            controller_tax_id=data.controller_tax_id or None,
            primary_country=data.primary_country,
            base_currency=data.base_currency,
        )
        self.db.add(group)
        await self.db.flush()

        self.db.add_all(
            [
                UserGroupMembership(user_id=creator_user_id, group_id=group.id, role=Role.ADMIN),
                AccountingConfiguration(group_id=group.id, **DEFAULT_ACCOUNTING_CONFIGURATION),
                ChartOfAccounts(
                    group_id=group.id,
                    name=f"Chart of accounts - {group.name}",
                    description="Default chart of accounts",
                ),
            ]
        )
        await self.db.flush()

        result = await self.db.execute(self._select_with_relations(group.id))
        return result.scalar_one()

    async def update(self, group_id: int, data: GroupUpdate) -> EconomicGroup:
        """Apply only the fields present in ``data``.

        An empty ``controller_tax_id`` clears the stored value. Raises
        ``NoResultFound`` if the group does not exist.
        """
        values = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "controller_tax_id":
                values[field] = value or None
            elif value is not None:
                values[field] = value

        if values:
            await self.db.execute(
                update(EconomicGroup).where(EconomicGroup.id == group_id).values(**values)
            )

        result = await self.db.execute(self._select_with_relations(group_id, configuration=False))
        return result.scalar_one()

    async def delete(self, group_id: int) -> EconomicGroup:
        """Soft delete: flip ``active`` to False and leave everything else alone."""
        stmt = (
            update(EconomicGroup)
            .where(EconomicGroup.id == group_id)
            .values(active=False)
            .returning(EconomicGroup)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def verify_user_access(self, group_id: int, user_id: int) -> bool:
        """Return True if the user has a membership row for the group."""
        return await self.get_member_role(group_id, user_id) is not None

    async def get_member_role(self, group_id: int, user_id: int) -> str | None:
        """Return the user's role inside the group, or None if not a member."""
        stmt = select(UserGroupMembership.role).where(
            UserGroupMembership.group_id == group_id,
            UserGroupMembership.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, group_id: int) -> bool:
        stmt = select(exists().where(EconomicGroup.id == group_id))
        result = await self.db.execute(stmt)
        return bool(result.scalar())
