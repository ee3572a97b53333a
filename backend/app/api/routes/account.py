"""
Account API Routes
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.dependencies import AccountDeletionServiceDep, CurrentUserId


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/delete-account")
async def delete_account(user_id: CurrentUserId, service: AccountDeletionServiceDep):
    """
    Delete the caller's data, storage files and login identity.

    Data cleanup is best-effort and reported per table. The request only
    succeeds if the identity itself is gone, since otherwise the user can
    still sign in.
    """
    report = await service.delete_account(user_id)
    status_code = 200 if report.identity_deleted else 500
    return JSONResponse(status_code=status_code, content=report.to_response())
