"""
Account Deletion Service

Removes a user's data table by table and commits that cleanup, clears
their storage folders, and only then deletes the login identity, trying
each deletion strategy until one works. Cleanup steps never abort the
run; their outcomes are reported back to the caller.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.domain.account import (
    USER_DATA_TABLES,
    USER_STORAGE_BUCKETS,
    AccountDeletionReport,
    CleanupResult,
    CleanupStatus,
    DeletionMethod,
    IdentityDeletionAttempt,
)
from app.infrastructure.db.repositories.account_repository import AccountDataRepository
from app.infrastructure.exceptions import DatabaseError
from app.infrastructure.supabase_admin.admin_service import SupabaseAdminService


logger = logging.getLogger(__name__)

DELETE_USER_RPC = "delete_auth_user_direct"

IdentityStrategy = Tuple[DeletionMethod, Callable[[str], Awaitable[None]]]


class IdentityDeletionFailed(Exception):
    """A strategy ran but reported that nothing was deleted."""


class AccountDeletionService:

    def __init__(
        self,
        account_repo: AccountDataRepository,
        admin: SupabaseAdminService,
        strategies: Optional[List[IdentityStrategy]] = None,
    ):
        self._account_repo = account_repo
        self._admin = admin
        self._strategies = strategies or [
            (DeletionMethod.ADMIN_API, self._delete_via_admin_api),
            (DeletionMethod.RPC, self._delete_via_rpc),
            (DeletionMethod.DIRECT_DELETE, self._delete_via_sql),
        ]

    async def delete_account(self, user_id: str) -> AccountDeletionReport:
        report = AccountDeletionReport(user_id=user_id)
        logger.info(f"Starting account deletion for user {user_id}")

        for table in USER_DATA_TABLES:
            report.data_cleanup.append(await self._clear_table(table, user_id))

        try:
            await self._account_repo.commit()
        except SQLAlchemyError as e:
            logger.error(f"Committing data cleanup failed for {user_id}; identity left in place: {e}")
            raise DatabaseError("Failed to delete user data", operation="delete", original_error=e)

        for bucket in USER_STORAGE_BUCKETS:
            report.data_cleanup.append(await self._clear_bucket(bucket, user_id))

        for method, strategy in self._strategies:
            try:
                await strategy(user_id)
            except Exception as e:
                logger.warning(f"Identity deletion via {method.value} failed for {user_id}: {e}")
                report.attempts.append(IdentityDeletionAttempt(method=method, success=False, error=str(e)))
                continue

            report.attempts.append(IdentityDeletionAttempt(method=method, success=True))
            logger.info(f"Deleted identity for {user_id} via {method.value}")
            break
        else:
            logger.error(f"All identity deletion strategies failed for user {user_id}")

        return report

    # =========================================================================
    # Data cleanup
    # =========================================================================

    async def _clear_table(self, table: str, user_id: str) -> CleanupResult:
        try:
            deleted = await self._account_repo.delete_user_rows(table, user_id)
        except SQLAlchemyError as e:
            logger.warning(f"Cleanup of {table} failed for {user_id}: {e}")
            return CleanupResult(table=table, status=CleanupStatus.ERROR, error=str(e))
        return CleanupResult(table=table, status=CleanupStatus.SUCCESS, deleted_rows=deleted)

    async def _clear_bucket(self, bucket: str, user_id: str) -> CleanupResult:
        label = f"storage:{bucket}"
        try:
            paths = await self._admin.list_files(bucket, user_id)
            removed = await self._admin.remove_files(bucket, paths)
        except Exception as e:
            # Missing buckets are common in fresh projects; report, do not fail.
            logger.warning(f"Storage cleanup of {bucket} failed for {user_id}: {e}")
            return CleanupResult(table=label, status=CleanupStatus.WARNING, error=str(e))
        return CleanupResult(table=label, status=CleanupStatus.SUCCESS, deleted_rows=removed)

    # =========================================================================
    # Identity strategies
    # =========================================================================

    async def _delete_via_admin_api(self, user_id: str) -> None:
        await self._admin.delete_user(user_id)

    async def _delete_via_rpc(self, user_id: str) -> None:
        result = await self._admin.rpc(DELETE_USER_RPC, {"target_user_id": user_id})
        if result is False:
            raise IdentityDeletionFailed(f"{DELETE_USER_RPC} returned false")

    async def _delete_via_sql(self, user_id: str) -> None:
        if not await self._account_repo.delete_auth_user(user_id):
            raise IdentityDeletionFailed("No auth.users row deleted")
