"""
Authentication API

Registration for students and instructors, one login per role, and the
current session. Login and registration are rate limited per client address.
"""
from fastapi import APIRouter, Depends, Request, status

from sptrack.api.deps import get_account_service
from sptrack.core.rate_limiter import login_rate_limit, register_rate_limit
from sptrack.core.security import create_access_token
from sptrack.modules.auth.dependencies import get_current_actor
from sptrack.modules.auth.identity import Actor
from sptrack.schemas.accounts import InstructorResponse, StudentResponse
from sptrack.schemas.auth import (
    InstructorRegister,
    SessionResponse,
    StudentLogin,
    StudentRegister,
    Token,
    UsernameLogin,
)
from sptrack.services.account_service import AccountService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(actor: Actor) -> Token:
    access_token = create_access_token({"sub": actor.id, "role": actor.role.value})
    return Token(access_token=access_token, role=actor.role.value, user_id=actor.id)


@router.post("/register", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
@register_rate_limit()
async def register_student(
    request: Request,
    student_data: StudentRegister,
    accounts: AccountService = Depends(get_account_service)
):
    """Register a new student account"""
    return await accounts.register_student(student_data)


@router.post("/instructor/register", response_model=InstructorResponse, status_code=status.HTTP_201_CREATED)
@register_rate_limit()
async def register_instructor(
    request: Request,
    instructor_data: InstructorRegister,
    accounts: AccountService = Depends(get_account_service)
):
    """Register a new instructor account"""
    return await accounts.register_instructor(instructor_data)


@router.post("/student/login", response_model=Token)
@login_rate_limit()
async def student_login(
    request: Request,
    credentials: StudentLogin,
    accounts: AccountService = Depends(get_account_service)
):
    actor = await accounts.authenticate_student(credentials.student_number, credentials.password)
    return _issue_token(actor)


@router.post("/instructor/login", response_model=Token)
@login_rate_limit()
async def instructor_login(
    request: Request,
    credentials: UsernameLogin,
    accounts: AccountService = Depends(get_account_service)
):
    actor = await accounts.authenticate_instructor(credentials.username, credentials.password)
    return _issue_token(actor)


@router.post("/admin/login", response_model=Token)
@login_rate_limit()
async def admin_login(
    request: Request,
    credentials: UsernameLogin,
    accounts: AccountService = Depends(get_account_service)
):
    actor = await accounts.authenticate_admin(credentials.username, credentials.password)
    return _issue_token(actor)


@router.get("/session", response_model=SessionResponse)
async def get_session(
    actor: Actor = Depends(get_current_actor),
    accounts: AccountService = Depends(get_account_service)
):
    """Who the bearer token belongs to"""
    return SessionResponse(
        user_id=actor.id,
        role=actor.role.value,
        name=await accounts.display_name(actor),
    )
