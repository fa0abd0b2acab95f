"""
Document access control.

Permission levels are ranked ``view < edit < admin``. The ``share`` and
``delete`` actions require the ``admin`` rank. A document's owner holds every
permission. Nothing here touches the database: callers pass a document whose
``shares`` collection is already loaded.
"""

from enum import Enum

from docarchive.constants.roles import is_admin_role


class DocumentAction(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    SHARE = "share"
    DELETE = "delete"
    ADMIN = "admin"


PERMISSION_RANKS = {
    "view": 1,
    "edit": 2,
    "admin": 3,
}

REQUIRED_RANKS = {
    DocumentAction.VIEW: PERMISSION_RANKS["view"],
    DocumentAction.EDIT: PERMISSION_RANKS["edit"],
    DocumentAction.SHARE: PERMISSION_RANKS["admin"],
    DocumentAction.DELETE: PERMISSION_RANKS["admin"],
    DocumentAction.ADMIN: PERMISSION_RANKS["admin"],
}


def get_share_permission(document, user_id: int) -> str | None:
    for share in document.shares:
        if share.user_id == user_id:
            return share.permission
    return None


def has_document_access(document, user_id: int, action: DocumentAction | str) -> bool:
    """
    Decide whether ``user_id`` may perform ``action`` on ``document``.

    Args:
        document: Document with ``owner_id`` and loaded ``shares``
        user_id: Acting user's id
        action: One of view, edit, share, delete, admin

    Returns:
        bool: True when the owner asks, or when the user's share rank meets the
        rank the action requires
    """
    if document.owner_id == user_id:
        return True

    permission = get_share_permission(document, user_id)
    if permission is None:
        return False

    required = REQUIRED_RANKS[DocumentAction(action)]
    return PERMISSION_RANKS.get(permission, 0) >= required


def can_access_document(document, user, action: DocumentAction | str) -> bool:
    """Same as ``has_document_access`` but lets tenant admins through on their own tenant."""
    if is_admin_role(user.role) and document.tenant_id == user.tenant_id:
        return True
    return has_document_access(document, user.id, action)
