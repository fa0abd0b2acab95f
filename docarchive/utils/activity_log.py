import json
import logging
from typing import Any

from fastapi import BackgroundTasks, Request

from docarchive import database
from docarchive.middleware.logging import get_client_ip
from docarchive.models.activity_log import ActivityLog, ActivityStatus, ResourceType

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = {"password", "new_password", "current_password", "token", "refresh_token", "secret", "code"}
REDACTED = "[REDACTED]"


def sanitize_details(details: dict[str, Any] | None) -> dict[str, Any] | None:
    """Redact sensitive keys and coerce the result into JSON-serializable form."""
    if not details:
        return None

    def _clean(value):
        if isinstance(value, dict):
            return {
                key: REDACTED if str(key).lower() in SENSITIVE_KEYS else _clean(item) for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [_clean(item) for item in value]
        return value

    return json.loads(json.dumps(_clean(details), default=str))


async def log_activity(
    action: str,
    user_id: int | None = None,
    tenant_id: int | None = None,
    resource_type: str = ResourceType.SYSTEM.value,
    resource_id: int | None = None,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    status: str = ActivityStatus.SUCCESS.value,
    error_message: str | None = None,
) -> None:
    """
    Append an activity record using a separate session.

    Failures are logged and swallowed; an activity record must never fail the
    request that produced it.
    """
    try:
        async with database.AsyncSessionLocal() as session:
            session.add(
                ActivityLog(
                    action=action,
                    user_id=user_id,
                    tenant_id=tenant_id,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    details=sanitize_details(details),
                    ip_address=ip_address,
                    user_agent=(user_agent or "")[:500] or None,
                    status=status,
                    error_message=error_message,
                )
            )
            await session.commit()
    except Exception as e:
        logger.error(f"Failed to log activity '{action}': {str(e)}")


def schedule_activity(
    background_tasks: BackgroundTasks,
    request: Request,
    action: str,
    user=None,
    **fields: Any,
) -> None:
    """Queue ``log_activity`` to run after the response, filling actor and client fields."""
    if user is not None:
        fields.setdefault("user_id", user.id)
        fields.setdefault("tenant_id", user.tenant_id)
    background_tasks.add_task(
        log_activity,
        action,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        **fields,
    )
