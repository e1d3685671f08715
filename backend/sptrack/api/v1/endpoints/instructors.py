from fastapi import APIRouter, Depends
from typing import List

from sptrack.api.deps import get_account_service
from sptrack.modules.auth.dependencies import get_current_actor
from sptrack.modules.auth.identity import Actor
from sptrack.schemas.accounts import InstructorResponse
from sptrack.services.account_service import AccountService

router = APIRouter(prefix="/instructors", tags=["Instructors"])


@router.get("", response_model=List[InstructorResponse])
async def list_instructors(
    actor: Actor = Depends(get_current_actor),
    accounts: AccountService = Depends(get_account_service)
):
    """Instructors a student can attribute an upload to"""
    return await accounts.list_instructors(actor)
