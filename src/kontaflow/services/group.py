"""Economic group business logic.

Enforces authorization and business rules, then delegates persistence to
GroupRepository. This is the only layer that raises application errors.
"""

from kontaflow.constants import COUNTRY_CURRENCY_RULES, Role
from kontaflow.exceptions import BusinessRuleError, ForbiddenError, NotFoundError
from kontaflow.logging import get_logger
from kontaflow.models import EconomicGroup
from kontaflow.repositories.group import GroupRepository
from kontaflow.schemas.group import (
    NAME_MIN_LENGTH,
    TAX_ID_PATTERN,
    GroupCreate,
    GroupListQuery,
    GroupUpdate,
)
from kontaflow.schemas.pagination import Paginated

logger = get_logger(__name__)

RESOURCE = "Economic group"


class GroupService:
    """Group use cases.

    The two keyword flags close authorization gaps of the current API and
    default to off:

    - ``scope_listing_to_member``: ``list_groups`` only returns the caller's groups.
    - ``require_admin_for_mutations``: ``update``/``delete`` need the ADMIN role.
    """

    def __init__(
        self,
        repository: GroupRepository,
        *,
        scope_listing_to_member: bool = False,
        require_admin_for_mutations: bool = False,
    ) -> None:
        self.repository = repository
        self.scope_listing_to_member = scope_listing_to_member
        self.require_admin_for_mutations = require_admin_for_mutations

    async def list_groups(self, filters: GroupListQuery, user_id: int) -> Paginated[EconomicGroup]:
        logger.debug("list_groups", user_id=user_id, filters=filters.model_dump())
        member_id = user_id if self.scope_listing_to_member else None
        return await self.repository.find_many(filters, member_id=member_id)

    async def get_by_id(self, group_id: int, user_id: int) -> EconomicGroup:
        logger.debug("get_group", group_id=group_id, user_id=user_id)

        group = await self.repository.find_by_id(group_id)
        if group is None:
            raise NotFoundError(RESOURCE, group_id)

        if not await self.repository.verify_user_access(group_id, user_id):
            raise ForbiddenError("You do not have access to this economic group")

        return group

    async def get_groups_for_user(self, user_id: int) -> list[EconomicGroup]:
        logger.debug("get_user_groups", user_id=user_id)
        return await self.repository.find_by_user_id(user_id)

    async def create(self, data: GroupCreate, user_id: int) -> EconomicGroup:
        logger.info("create_group", user_id=user_id, name=data.name)

        self._validate_group_data(
            name=data.name,
            controller_tax_id=data.controller_tax_id,
            primary_country=data.primary_country,
            base_currency=data.base_currency,
        )
        group = await self.repository.create(data, user_id)

        logger.info("group_created", group_id=group.id, user_id=user_id)
        return group

    async def update(self, group_id: int, data: GroupUpdate, user_id: int) -> EconomicGroup:
        logger.info("update_group", group_id=group_id, user_id=user_id)

        if not await self.repository.exists(group_id):
            raise NotFoundError(RESOURCE, group_id)
        await self._check_access(group_id, user_id)

        if data.name or data.primary_country or data.base_currency:
            self._validate_group_data(
                name=data.name,
                controller_tax_id=data.controller_tax_id,
                primary_country=data.primary_country,
                base_currency=data.base_currency,
            )

        group = await self.repository.update(group_id, data)

        logger.info("group_updated", group_id=group_id, user_id=user_id)
        return group

    async def delete(self, group_id: int, user_id: int) -> None:
        """Soft delete a group that has no active companies."""
        logger.warning("delete_group", group_id=group_id, user_id=user_id)

        group = await self.repository.find_by_id(group_id)
        if group is None:
            raise NotFoundError(RESOURCE, group_id)
        await self._check_access(group_id, user_id)

        if any(company.active for company in group.companies):
            raise BusinessRuleError(
                "Cannot delete a group with active companies. Deactivate the companies first.",
                "EMPRESAS_ACTIVAS",
            )

        await self.repository.delete(group_id)

        logger.info("group_deleted", group_id=group_id, user_id=user_id)

    async def _check_access(self, group_id: int, user_id: int) -> None:
        role = await self.repository.get_member_role(group_id, user_id)
        if role is None:
            raise ForbiddenError("You do not have access to this economic group")
        if self.require_admin_for_mutations and role != Role.ADMIN:
            raise ForbiddenError("Only group administrators can modify this economic group")

    @staticmethod
    def _validate_group_data(
        *,
        name: str | None,
        controller_tax_id: str | None,
        primary_country: str | None,
        base_currency: str | None,
    ) -> None:
        """Cross-field rules on top of schema validation.

        Name and tax id are re-checked so the service stays safe when called
        without going through the request schemas.
        """
        if name and len(name.strip()) < NAME_MIN_LENGTH:
            raise BusinessRuleError("Name must be at least 3 characters")

        if controller_tax_id and not TAX_ID_PATTERN.fullmatch(controller_tax_id):
            raise BusinessRuleError("Tax ID must have 12 numeric digits")

        allowed = COUNTRY_CURRENCY_RULES.get(primary_country) if primary_country else None
        if allowed and base_currency and base_currency not in allowed:
            raise BusinessRuleError(
                f"For {primary_country}, the base currency must be one of: {', '.join(allowed)}",
                "MONEDA_INVALIDA_PAIS",
            )
