# Database models
from app.models.account_deletion import AccountDeletionRequest, DeletionStatus
from app.models.base import Base

__all__ = [
    "Base",
    "AccountDeletionRequest",
    "DeletionStatus",
]
