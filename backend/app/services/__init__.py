# Business logic services
from app.services.account_deletion import (
    AccountDeletionError,
    DeletionAction,
    DeletionConflictError,
    DeletionNotFoundError,
    DeletionStorageError,
    InvalidArgumentError,
    cancel_deletion,
    get_deletion_status,
    manage_account_deletion,
    process_due_deletions,
    request_deletion,
)
from app.services.supabase_admin import SupabaseAdminError, SupabaseAuthAdmin, get_auth_admin

__all__ = [
    "AccountDeletionError",
    "DeletionAction",
    "DeletionConflictError",
    "DeletionNotFoundError",
    "DeletionStorageError",
    "InvalidArgumentError",
    "request_deletion",
    "cancel_deletion",
    "get_deletion_status",
    "manage_account_deletion",
    "process_due_deletions",
    "SupabaseAdminError",
    "SupabaseAuthAdmin",
    "get_auth_admin",
]
