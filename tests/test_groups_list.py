"""Integration tests for GET /api/groups and GET /api/groups/mine."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from kontaflow.config import Settings, get_settings
from kontaflow.main import app
from tests.factories import auth, make_group
from tests.seeds import ACCOUNTANT_ID, ADMIN_ID, GROUP_AR_ID, GROUP_UY_ID, OPERATIVE_ID


async def _add_groups(db: AsyncSession, count: int, *, active: bool = True) -> None:
    for n in range(count):
        db.add(make_group(name=f"Grupo Extra {n}", controller_tax_id=None, active=active))
    await db.commit()
    db.expunge_all()


# ---------------------------------------------------------------------------
# 1. Listing, envelope and ordering
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_list_groups_returns_paginated_envelope(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    resp = await client.get("/api/groups", headers=auth(ADMIN_ID))

    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 2, "totalPages": 1}
    # Same created_at for both seeds, so the newer id comes first
    assert [g["id"] for g in body["data"]] == [GROUP_AR_ID, GROUP_UY_ID]


@pytest.mark.asyncio
async def test_list_groups_counts_companies_per_group(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    resp = await client.get("/api/groups", headers=auth(ADMIN_ID))

    counts = {g["id"]: g["companyCount"] for g in resp.json()["data"]}
    assert counts == {GROUP_UY_ID: 2, GROUP_AR_ID: 0}


@pytest.mark.asyncio
async def test_list_groups_item_shape(client: AsyncClient, seeded_db: AsyncSession) -> None:
    resp = await client.get("/api/groups", headers=auth(ADMIN_ID))
    item = next(g for g in resp.json()["data"] if g["id"] == GROUP_UY_ID)

    assert item["name"] == "Grupo Rioplatense"
    assert item["controllerTaxId"] == "211234560018"
    assert item["primaryCountry"] == "UY"
    assert item["baseCurrency"] == "UYU"
    assert item["active"] is True
    assert "createdAt" in item
    assert "companies" not in item


@pytest.mark.asyncio
async def test_list_groups_is_not_limited_to_callers_groups_by_default(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    resp = await client.get("/api/groups", headers=auth(OPERATIVE_ID))

    assert resp.json()["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_list_groups_scoped_to_member_when_enabled(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    app.dependency_overrides[get_settings] = lambda: Settings(scope_group_listing_to_member=True)

    resp = await client.get("/api/groups", headers=auth(OPERATIVE_ID))

    assert [g["id"] for g in resp.json()["data"]] == [GROUP_UY_ID]
    assert resp.json()["pagination"]["total"] == 1


# ---------------------------------------------------------------------------
# 2. Filters
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, expected_ids",
    [
        ({"search": "RIOPLAT"}, [GROUP_UY_ID]),
        ({"search": "pampa"}, [GROUP_AR_ID]),
        ({"search": "2112345"}, [GROUP_UY_ID]),
        ({"search": "%"}, []),
        ({"search": "_"}, []),
        ({"primaryCountry": "AR"}, [GROUP_AR_ID]),
        ({"active": "true"}, [GROUP_AR_ID, GROUP_UY_ID]),
        ({"active": "false"}, []),
        ({"active": "maybe"}, [GROUP_AR_ID, GROUP_UY_ID]),
        ({"search": "grupo", "primaryCountry": "UY"}, [GROUP_UY_ID]),
    ],
)
async def test_list_groups_filters(
    client: AsyncClient,
    seeded_db: AsyncSession,
    params: dict[str, str],
    expected_ids: list[int],
) -> None:
    resp = await client.get("/api/groups", params=params, headers=auth(ADMIN_ID))

    assert resp.status_code == 200
    assert [g["id"] for g in resp.json()["data"]] == expected_ids


@pytest.mark.asyncio
async def test_list_groups_active_filter_finds_inactive_groups(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    await _add_groups(seeded_db, 1, active=False)

    resp = await client.get("/api/groups", params={"active": "false"}, headers=auth(ADMIN_ID))

    data = resp.json()["data"]
    assert len(data) == 1
    assert data[0]["active"] is False


# ---------------------------------------------------------------------------
# 3. Pagination
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_list_groups_paginates(client: AsyncClient, seeded_db: AsyncSession) -> None:
    await _add_groups(seeded_db, 3)

    first = await client.get("/api/groups", params={"limit": "2"}, headers=auth(ADMIN_ID))
    last = await client.get(
        "/api/groups", params={"limit": "2", "page": "3"}, headers=auth(ADMIN_ID)
    )

    assert first.json()["pagination"] == {"page": 1, "limit": 2, "total": 5, "totalPages": 3}
    assert len(first.json()["data"]) == 2
    assert last.json()["pagination"]["page"] == 3
    assert len(last.json()["data"]) == 1


@pytest.mark.asyncio
async def test_list_groups_total_counts_filtered_rows_not_the_page(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    await _add_groups(seeded_db, 3)

    resp = await client.get(
        "/api/groups",
        params={"search": "Extra", "limit": "2", "page": "2"},
        headers=auth(ADMIN_ID),
    )

    assert resp.json()["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
    assert len(resp.json()["data"]) == 1


@pytest.mark.asyncio
async def test_list_groups_page_past_the_end_is_empty(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    resp = await client.get("/api/groups", params={"page": "9"}, headers=auth(ADMIN_ID))

    assert resp.status_code == 200
    assert resp.json()["data"] == []
    assert resp.json()["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_list_groups_search_without_matches(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    resp = await client.get("/api/groups", params={"search": "nada"}, headers=auth(ADMIN_ID))

    assert resp.json() == {
        "data": [],
        "pagination": {"page": 1, "limit": 10, "total": 0, "totalPages": 0},
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, field, message",
    [
        ({"page": "0"}, "page", "Page must be greater than 0"),
        ({"page": "abc"}, "page", "Page must be greater than 0"),
        ({"page": "1_0"}, "page", "Page must be greater than 0"),
        ({"page": "99999999999999999999"}, "page", "Page is out of range"),
        ({"limit": "+5"}, "limit", "Limit must be between 1 and 100"),
        ({"limit": "0"}, "limit", "Limit must be between 1 and 100"),
        ({"limit": "101"}, "limit", "Limit must be between 1 and 100"),
        ({"primaryCountry": "XX"}, "primaryCountry", None),
    ],
)
async def test_list_groups_rejects_invalid_query(
    client: AsyncClient,
    seeded_db: AsyncSession,
    params: dict[str, str],
    field: str,
    message: str | None,
) -> None:
    resp = await client.get("/api/groups", params=params, headers=auth(ADMIN_ID))

    assert resp.status_code == 400
    details = resp.json()["error"]["details"]
    assert field in details
    if message is not None:
        assert details[field] == [message]


@pytest.mark.asyncio
async def test_list_groups_requires_identity(client: AsyncClient, seeded_db: AsyncSession) -> None:
    resp = await client.get("/api/groups", params={"page": "0"})

    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# 4. GET /api/groups/mine
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_my_groups_sorted_by_name(client: AsyncClient, seeded_db: AsyncSession) -> None:
    resp = await client.get("/api/groups/mine", headers=auth(ACCOUNTANT_ID))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [g["name"] for g in data] == ["Grupo Pampa", "Grupo Rioplatense"]
    assert set(data[0]) == {"id", "name", "primaryCountry", "baseCurrency", "active"}


@pytest.mark.asyncio
async def test_my_groups_only_includes_memberships(
    client: AsyncClient, seeded_db: AsyncSession
) -> None:
    resp = await client.get("/api/groups/mine", headers=auth(ADMIN_ID))

    assert [g["id"] for g in resp.json()["data"]] == [GROUP_UY_ID]
