"""
User Routes

Profile, preferences, personal activity and statistics for the signed-in
user, user search within the tenant, and tenant-scoped user management for
Admins.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.auth import get_current_user, require_admin
from docarchive.database import get_db
from docarchive.models.activity_log import ActivityAction, ResourceType
from docarchive.models.user import User
from docarchive.schemas import AdminUserUpdate, PreferencesUpdate, ProfileUpdate, UserBrief, UserOut, dump, dump_all
from docarchive.schemas.activity import ActivityOut
from docarchive.services.user_service import UserService
from docarchive.utils.activity_log import schedule_activity
from docarchive.utils.pagination import PageParams, page_params, pagination_meta

router = APIRouter(prefix="/users", tags=["Users"])


def _user(user: User) -> dict:
    return {"status": "success", "data": {"user": dump(UserOut.model_validate(user))}}


def _activity_page(entries, total: int, params: PageParams) -> dict:
    return {
        "status": "success",
        **pagination_meta(total, params, len(entries)),
        "data": {"activities": dump_all(ActivityOut, entries)},
    }


# ============== Self-service ==============


@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return _user(current_user)


@router.patch("/profile")
async def update_profile(
    data: ProfileUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_profile(current_user, data)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.PROFILE_UPDATE.value,
        user=user,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
        details={"fields": sorted(data.model_dump(exclude_unset=True))},
    )
    return _user(user)


@router.patch("/preferences")
async def update_preferences(
    data: PreferencesUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_preferences(current_user, data)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.SETTINGS_CHANGE.value,
        user=user,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return {"status": "success", "data": {"preferences": user.preferences}}


@router.get("/activity")
async def my_activity(
    params: PageParams = Depends(page_params),
    action: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    entries, total = await UserService(db).activity(current_user, params, action)
    return _activity_page(entries, total, params)


@router.get("/statistics")
async def my_statistics(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"status": "success", "data": await UserService(db).statistics(current_user)}


@router.get("/search")
async def search_users(
    q: str = Query(..., min_length=2, max_length=100),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await UserService(db).search(current_user, q, limit)
    return {"status": "success", "results": len(users), "data": {"users": dump_all(UserBrief, users)}}


# ============== Tenant administration ==============


@router.get("")
async def list_users(
    params: PageParams = Depends(page_params),
    search: str | None = Query(None, max_length=100),
    role: str | None = None,
    is_active: bool | None = Query(None, alias="isActive"),
    sort_by: str | None = Query(None, alias="sortBy"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users, total = await UserService(db).list_users(admin, params, search, role, is_active, sort_by)
    return {
        "status": "success",
        **pagination_meta(total, params, len(users)),
        "data": {"users": dump_all(UserOut, users)},
    }


@router.get("/{user_id}")
async def get_user(user_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return _user(await UserService(db).get_user(admin, user_id))


@router.patch("/{user_id}")
async def update_user(
    user_id: int,
    data: AdminUserUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_user(admin, user_id, data)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.USER_UPDATE.value,
        user=admin,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
        details={"fields": sorted(data.model_dump(exclude_unset=True))},
    )
    return _user(user)


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).deactivate_user(admin, user_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.USER_DEACTIVATE.value,
        user=admin,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return {"status": "success", "message": "User deactivated successfully"}


@router.get("/{user_id}/activity")
async def user_activity(
    user_id: int,
    params: PageParams = Depends(page_params),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    entries, total = await UserService(db).user_activity(admin, user_id, params)
    return _activity_page(entries, total, params)


@router.get("/{user_id}/statistics")
async def user_statistics(user_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return {"status": "success", "data": await UserService(db).user_statistics(admin, user_id)}
