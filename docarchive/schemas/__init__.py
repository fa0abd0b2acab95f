"""
Request and response schemas.

``REQUEST_SCHEMAS`` maps ``<router module>.<endpoint name>`` to the request body
schema that endpoint binds in its signature (multipart routes build theirs
from the form fields). The routers do not read it: it is a reference table of
the API surface, kept honest by test/test_schemas.py which checks every entry
against the mounted routes.
"""

from .comment import CommentCreate, CommentOut, CommentUpdate, ReactionRequest
from .common import APIModel, dump, dump_all
from .document import (
    DocumentOut,
    DocumentUpdate,
    DocumentUploadForm,
    ShareRequest,
    VersionOut,
    VersionUploadForm,
)
from .message import MessageCreate, MessageOut, MessageRespond, MessageUpdate
from .notification import NotificationOut
from .user import (
    AdminUserUpdate,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    PreferencesUpdate,
    ProfileUpdate,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    RoleUpdate,
    TwoFactorCodeRequest,
    TwoFactorDisableRequest,
    UserBrief,
    UserOut,
)

REQUEST_SCHEMAS: dict[str, type[APIModel]] = {
    "auth.register": RegisterRequest,
    "auth.login": LoginRequest,
    "auth.forgot_password": ForgotPasswordRequest,
    "auth.reset_password": ResetPasswordRequest,
    "auth.change_password": ChangePasswordRequest,
    "auth.refresh_token": RefreshTokenRequest,
    "auth.enable_two_factor": TwoFactorCodeRequest,
    "auth.disable_two_factor": TwoFactorDisableRequest,
    "documents.upload_document": DocumentUploadForm,
    "documents.update_document": DocumentUpdate,
    "documents.share_document": ShareRequest,
    "documents.upload_version": VersionUploadForm,
    "comments.create_comment": CommentCreate,
    "comments.update_comment": CommentUpdate,
    "comments.add_reaction": ReactionRequest,
    "messages.create_message": MessageCreate,
    "messages.update_message": MessageUpdate,
    "messages.respond_to_message": MessageRespond,
    "users.update_profile": ProfileUpdate,
    "users.update_preferences": PreferencesUpdate,
    "users.update_user": AdminUserUpdate,
    "admin.update_role": RoleUpdate,
}

__all__ = [
    "REQUEST_SCHEMAS",
    "APIModel",
    "dump",
    "dump_all",
    "CommentOut",
    "DocumentOut",
    "MessageOut",
    "NotificationOut",
    "UserBrief",
    "UserOut",
    "VersionOut",
]
