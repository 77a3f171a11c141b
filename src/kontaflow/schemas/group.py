"""Economic group request and response schemas.

Request models validate and normalize untrusted input. Every field is checked
in the same pass, so one failure reports all offending fields at once. Custom
errors use PydanticCustomError so clients see the plain message without
pydantic's "Value error, " prefix.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AfterValidator, BeforeValidator, field_validator
from pydantic_core import PydanticCustomError

from kontaflow.constants import Country, Currency
from kontaflow.schemas.pagination import CamelModel, PaginatedResponse

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 200
TAX_ID_PATTERN = re.compile(r"[0-9]{12}")
DIGITS_PATTERN = re.compile(r"[0-9]+")
# Identifiers and page numbers are stored in 32-bit integer columns
MAX_INT = 2_147_483_647


def _check_name(value: str) -> str:
    value = value.strip()
    if len(value) < NAME_MIN_LENGTH:
        raise PydanticCustomError("name_too_short", "Name must be at least 3 characters")
    if len(value) > NAME_MAX_LENGTH:
        raise PydanticCustomError("name_too_long", "Name cannot exceed 200 characters")
    return value


def _check_tax_id(value: str) -> str:
    # Empty string means "no tax id"; the repository stores it as NULL
    if value and not TAX_ID_PATTERN.fullmatch(value):
        raise PydanticCustomError("invalid_tax_id", "Tax ID must have 12 digits")
    return value


def _parse_country(value: Any) -> Any:
    if isinstance(value, str) and value in Country._value2member_map_:
        return value
    raise PydanticCustomError(
        "invalid_country",
        "Invalid country. Must be one of: " + ", ".join(Country),
    )


def _parse_currency(value: Any) -> Any:
    if isinstance(value, str) and value in Currency._value2member_map_:
        return value
    raise PydanticCustomError(
        "invalid_currency",
        "Invalid currency. Must be one of: " + ", ".join(Currency),
    )


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and DIGITS_PATTERN.fullmatch(value):
        return int(value)
    return None


GroupName = Annotated[str, AfterValidator(_check_name)]
TaxId = Annotated[str, AfterValidator(_check_tax_id)]
CountryCode = Annotated[Country, BeforeValidator(_parse_country)]
CurrencyCode = Annotated[Currency, BeforeValidator(_parse_currency)]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class GroupCreate(CamelModel):
    """Body of POST /api/groups."""

    name: GroupName
    controller_tax_id: TaxId | None = None
    primary_country: CountryCode
    base_currency: CurrencyCode


class GroupUpdate(CamelModel):
    """Body of PUT /api/groups/{id}. Only the fields sent are applied."""

    name: GroupName | None = None
    controller_tax_id: TaxId | None = None
    primary_country: CountryCode | None = None
    base_currency: CurrencyCode | None = None
    active: bool | None = None


class GroupListQuery(CamelModel):
    """Query string of GET /api/groups.

    Values arrive as strings; page and limit become integers, ``active``
    becomes a bool only for the literals "true" and "false".
    """

    page: int = 1
    limit: int = 10
    search: str | None = None
    active: bool | None = None
    primary_country: CountryCode | None = None

    @field_validator("page", mode="before")
    @classmethod
    def _parse_page(cls, value: Any) -> int:
        number = _to_int(value)
        if number is None or number <= 0:
            raise PydanticCustomError("invalid_page", "Page must be greater than 0")
        if number > MAX_INT:
            raise PydanticCustomError("page_out_of_range", "Page is out of range")
        return number

    @field_validator("limit", mode="before")
    @classmethod
    def _parse_limit(cls, value: Any) -> int:
        number = _to_int(value)
        if number is None or not 1 <= number <= 100:
            raise PydanticCustomError("invalid_limit", "Limit must be between 1 and 100")
        return number

    @field_validator("active", mode="before")
    @classmethod
    def _parse_active(cls, value: Any) -> bool | None:
        if isinstance(value, bool):
            return value
        if value == "true":
            return True
        if value == "false":
            return False
        return None


class GroupParams(CamelModel):
    """Route parameters of /api/groups/{id}."""

    id: int

    @field_validator("id", mode="before")
    @classmethod
    def _parse_id(cls, value: Any) -> int:
        number = _to_int(value)
        if number is None or not 0 <= number <= MAX_INT:
            raise PydanticCustomError("invalid_id", "ID must be a number")
        return number


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class CompanyInGroup(CamelModel):
    id: int
    name: str
    tax_id: str
    functional_currency: str
    active: bool


class ChartOfAccountsInGroup(CamelModel):
    id: int
    name: str
    active: bool


class AccountingConfigurationResponse(CamelModel):
    id: int
    group_id: int
    allow_postings_in_closed_period: bool
    require_global_approval: bool
    min_approval_amount: Decimal
    allow_unbalanced_postings: bool
    amount_decimals: int
    exchange_rate_decimals: int


class GroupSummary(CamelModel):
    """Minimal projection used by GET /api/groups/mine."""

    id: int
    name: str
    primary_country: str
    base_currency: str
    active: bool


class GroupResponse(GroupSummary):
    controller_tax_id: str | None
    created_at: datetime


class GroupListItem(GroupResponse):
    """Row of GET /api/groups; ``company_count`` is attached by the repository."""

    company_count: int


class GroupUpdated(GroupResponse):
    companies: list[CompanyInGroup]
    chart_of_accounts: ChartOfAccountsInGroup | None


class GroupDetail(GroupUpdated):
    """Group with every relation: companies, chart of accounts and configuration."""

    configuration: AccountingConfigurationResponse | None


GroupListResponse = PaginatedResponse[GroupListItem]
