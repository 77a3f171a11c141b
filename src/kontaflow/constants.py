"""Domain enumerations and fixed defaults shared by models, schemas and services."""

from decimal import Decimal
from enum import StrEnum
from typing import Any


class Country(StrEnum):
    """ISO 3166-1 alpha-2 codes accepted as a group's primary country."""

    UY = "UY"
    AR = "AR"
    BR = "BR"
    CL = "CL"
    CO = "CO"
    PE = "PE"
    MX = "MX"
    US = "US"
    ES = "ES"


class Currency(StrEnum):
    """ISO 4217 codes accepted as a group's base currency."""

    UYU = "UYU"
    USD = "USD"
    ARS = "ARS"
    BRL = "BRL"
    CLP = "CLP"
    COP = "COP"
    PEN = "PEN"
    MXN = "MXN"
    EUR = "EUR"


class Role(StrEnum):
    """Role a user holds inside an economic group."""

    ADMIN = "ADMIN"
    ACCOUNTANT = "ACCOUNTANT"
    OPERATIVE = "OPERATIVE"


# Countries that restrict which base currencies a group may use.
# Countries missing from this table accept any supported currency.
COUNTRY_CURRENCY_RULES: dict[str, tuple[str, ...]] = {
    Country.UY: (Currency.UYU, Currency.USD),
}

# Accounting configuration written alongside every new group
DEFAULT_ACCOUNTING_CONFIGURATION: dict[str, Any] = {
    "allow_postings_in_closed_period": False,
    "require_global_approval": False,
    "min_approval_amount": Decimal("50000.00"),
    "allow_unbalanced_postings": False,
    "amount_decimals": 2,
    "exchange_rate_decimals": 4,
}
