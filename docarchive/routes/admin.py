"""
Admin Routes

Platform-wide administration. Every endpoint requires the Admin role and,
unlike the rest of the API, is not restricted to the caller's tenant.
"""

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.auth import require_admin
from docarchive.database import get_db
from docarchive.dependencies import get_storage
from docarchive.models.activity_log import ActivityAction, ActivityStatus, ResourceType
from docarchive.models.user import User
from docarchive.schemas import DocumentOut, RoleUpdate, UserOut, dump, dump_all
from docarchive.schemas.activity import ActivityOut, TenantOut
from docarchive.schemas.document import DocumentSummary
from docarchive.services.admin_service import AdminService
from docarchive.services.storage_service import StorageService
from docarchive.utils.activity_log import schedule_activity
from docarchive.utils.pagination import PageParams, page_params, pagination_meta

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> AdminService:
    return AdminService(db, storage)


def _user(user: User) -> dict:
    return {"status": "success", "data": {"user": dump(UserOut.model_validate(user))}}


@router.get("/dashboard/stats")
async def dashboard_stats(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return {"status": "success", "data": await service.dashboard_stats()}


@router.get("/system/health")
async def system_health(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return {"status": "success", "data": await service.system_health()}


# ============== Users ==============


@router.get("/users")
async def list_users(
    params: PageParams = Depends(page_params),
    search: str | None = Query(None, max_length=100),
    role: str | None = None,
    tenant_id: int | None = Query(None, alias="tenantId"),
    is_active: bool | None = Query(None, alias="isActive"),
    sort_by: str | None = Query(None, alias="sortBy"),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    users, total = await service.list_users(params, search, role, tenant_id, is_active, sort_by)
    return {
        "status": "success",
        **pagination_meta(total, params, len(users)),
        "data": {"users": dump_all(UserOut, users)},
    }


@router.get("/users/{user_id}")
async def get_user(user_id: int, _: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    user, documents, activity = await service.user_details(user_id)
    return {
        "status": "success",
        "data": {
            "user": dump(UserOut.model_validate(user)),
            "documents": dump_all(DocumentSummary, documents),
            "recentActivity": dump_all(ActivityOut, activity),
        },
    }


@router.patch("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = await service.set_active(admin, user_id, False)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.USER_DEACTIVATE.value,
        user=admin,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return _user(user)


@router.patch("/users/{user_id}/activate")
async def activate_user(
    user_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = await service.set_active(admin, user_id, True)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.USER_ACTIVATE.value,
        user=admin,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return _user(user)


@router.patch("/users/{user_id}/role")
async def update_role(
    user_id: int,
    data: RoleUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = await service.set_role(admin, user_id, data.role.value)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.PERMISSION_CHANGE.value,
        user=admin,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
        details={"role": data.role.value},
    )
    return _user(user)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    summary = await service.purge_user(admin, user_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.USER_DELETE.value,
        user=admin,
        resource_type=ResourceType.USER.value,
        resource_id=user_id,
        details=summary,
    )
    return {"status": "success", "message": "User and associated data deleted", "data": summary}


# ============== Cross-tenant views ==============


@router.get("/tenants")
async def list_tenants(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    rows = await service.tenants()
    tenants = [
        {
            **dump(TenantOut.model_validate(row["tenant"])),
            "userCount": row["users"],
            "documentCount": row["documents"],
            "storageUsed": row["storage_used"],
        }
        for row in rows
    ]
    return {"status": "success", "results": len(tenants), "data": {"tenants": tenants}}


@router.get("/activities")
async def list_activities(
    params: PageParams = Depends(page_params),
    tenant_id: int | None = Query(None, alias="tenantId"),
    action: ActivityAction | None = None,
    activity_status: ActivityStatus | None = Query(None, alias="status"),
    user_id: int | None = Query(None, alias="userId"),
    search: str | None = Query(None, max_length=100),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    entries, total = await service.activities(
        params,
        tenant_id=tenant_id,
        action=action.value if action else None,
        status=activity_status.value if activity_status else None,
        user_id=user_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "status": "success",
        **pagination_meta(total, params, len(entries)),
        "data": {"activities": dump_all(ActivityOut, entries)},
    }


@router.get("/documents")
async def list_documents(
    params: PageParams = Depends(page_params),
    tenant_id: int | None = Query(None, alias="tenantId"),
    owner_id: int | None = Query(None, alias="ownerId"),
    search: str | None = Query(None, max_length=200),
    include_deleted: bool = Query(False, alias="includeDeleted"),
    sort_by: str | None = Query(None, alias="sortBy"),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    documents, total = await service.documents(params, tenant_id, owner_id, search, include_deleted, sort_by)
    return {
        "status": "success",
        **pagination_meta(total, params, len(documents)),
        "data": {"documents": dump_all(DocumentOut, documents)},
    }
