"""
Account Deletion Domain Models

Fixed cleanup order for user-owned data and the result records the
deletion orchestrator reports back to the client.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# Children before parents so foreign keys never block a delete.
USER_DATA_TABLES = (
    "messages",
    "conversations",
    "notification_history",
    "notification_preferences",
    "usage_counters",
    "expenses",
    "knowledge_base",
    "integrations",
    "user_subscriptions",
    "profiles",
)

USER_STORAGE_BUCKETS = ("receipts", "avatars", "documents")


class CleanupStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class DeletionMethod(str, Enum):
    """Identity deletion strategies, tried in declaration order."""
    ADMIN_API = "admin_api"
    RPC = "rpc"
    DIRECT_DELETE = "direct_delete"


class CleanupResult(BaseModel):
    """Outcome of clearing one table or bucket."""
    model_config = ConfigDict(populate_by_name=True)

    table: str
    status: CleanupStatus
    deleted_rows: Optional[int] = Field(default=None, serialization_alias="deletedRows")
    error: Optional[str] = None


class IdentityDeletionAttempt(BaseModel):
    method: DeletionMethod
    success: bool
    error: Optional[str] = None


class AccountDeletionReport(BaseModel):
    """Everything the orchestrator did for one user."""
    user_id: str
    data_cleanup: list[CleanupResult] = Field(default_factory=list)
    attempts: list[IdentityDeletionAttempt] = Field(default_factory=list)

    @property
    def method(self) -> Optional[DeletionMethod]:
        """Strategy that removed the identity, if any did."""
        for attempt in self.attempts:
            if attempt.success:
                return attempt.method
        return None

    @property
    def identity_deleted(self) -> bool:
        return self.method is not None

    def cleanup_payload(self) -> list[dict[str, Any]]:
        return [
            result.model_dump(mode="json", by_alias=True, exclude_none=True)
            for result in self.data_cleanup
        ]

    def to_response(self) -> dict[str, Any]:
        if self.identity_deleted:
            return {
                "success": True,
                "message": "Account and all associated data deleted successfully",
                "method": self.method.value,
                "dataCleanup": self.cleanup_payload(),
            }
        return {
            "success": False,
            "error": "Failed to delete auth user - user can still log in",
            "warning": "Data cleanup completed but auth user deletion failed",
            "details": {a.method.value: a.error for a in self.attempts},
            "dataCleanup": self.cleanup_payload(),
        }
