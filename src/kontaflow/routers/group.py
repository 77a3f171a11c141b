"""Economic group endpoints, mounted under /api/groups."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from kontaflow.dependencies import CurrentUser, GroupServiceDep
from kontaflow.schemas.group import (
    GroupCreate,
    GroupDetail,
    GroupListQuery,
    GroupListResponse,
    GroupParams,
    GroupSummary,
    GroupUpdate,
    GroupUpdated,
)
from kontaflow.schemas.pagination import DataResponse, DeleteResponse, MessageResponse

router = APIRouter()


def parse_group_id(group_id: str) -> int:
    """Validate the ``{group_id}`` path segment; errors surface as 400, not 422."""
    return GroupParams.model_validate({"id": group_id}).id


def group_list_query(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    active: str | None = None,
    primary_country: Annotated[str | None, Query(alias="primaryCountry")] = None,
) -> GroupListQuery:
    raw = {
        "page": page,
        "limit": limit,
        "search": search,
        "active": active,
        "primaryCountry": primary_country,
    }
    return GroupListQuery.model_validate({k: v for k, v in raw.items() if v is not None})


GroupId = Annotated[int, Depends(parse_group_id)]
ListQuery = Annotated[GroupListQuery, Depends(group_list_query)]


@router.get("", response_model=GroupListResponse, status_code=200)
async def list_groups(
    user: CurrentUser, service: GroupServiceDep, filters: ListQuery
) -> GroupListResponse:
    """List groups with filters, pagination and per-group company count."""
    result = await service.list_groups(filters, user.id)
    return GroupListResponse(data=result.items, pagination=result.pagination())


@router.get("/mine", response_model=DataResponse[list[GroupSummary]], status_code=200)
async def list_my_groups(
    user: CurrentUser, service: GroupServiceDep
) -> DataResponse[list[GroupSummary]]:
    groups = await service.get_groups_for_user(user.id)
    return DataResponse[list[GroupSummary]](data=groups)


@router.get("/{group_id}", response_model=DataResponse[GroupDetail], status_code=200)
async def get_group(
    user: CurrentUser, group_id: GroupId, service: GroupServiceDep
) -> DataResponse[GroupDetail]:
    group = await service.get_by_id(group_id, user.id)
    return DataResponse[GroupDetail](data=group)


@router.post("", response_model=MessageResponse[GroupDetail], status_code=201)
async def create_group(
    user: CurrentUser, body: GroupCreate, service: GroupServiceDep
) -> MessageResponse[GroupDetail]:
    """Create a group; the caller becomes its ADMIN."""
    group = await service.create(body, user.id)
    return MessageResponse[GroupDetail](
        data=group, message="Economic group created successfully"
    )


@router.put("/{group_id}", response_model=MessageResponse[GroupUpdated], status_code=200)
async def update_group(
    user: CurrentUser, group_id: GroupId, body: GroupUpdate, service: GroupServiceDep
) -> MessageResponse[GroupUpdated]:
    group = await service.update(group_id, body, user.id)
    return MessageResponse[GroupUpdated](
        data=group, message="Economic group updated successfully"
    )


@router.delete("/{group_id}", response_model=DeleteResponse, status_code=200)
async def delete_group(
    user: CurrentUser, group_id: GroupId, service: GroupServiceDep
) -> DeleteResponse:
    """Soft delete; refused while the group still has active companies."""
    await service.delete(group_id, user.id)
    return DeleteResponse(success=True, message="Economic group deleted successfully")
