from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from sptrack.core.database import get_db
from sptrack.core.exceptions import UnauthenticatedError, ForbiddenError
from sptrack.core.logging_config import set_actor
from sptrack.modules.auth.identity import Actor, Role, resolve_actor

security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Actor:
    """Get the authenticated actor, 401 without a valid bearer token"""
    if not credentials or not credentials.credentials:
        raise UnauthenticatedError()

    actor = await resolve_actor(db, credentials.credentials)
    set_actor(actor.label)
    return actor


async def require_student(
    actor: Actor = Depends(get_current_actor)
) -> Actor:
    """Get current student"""
    if actor.role != Role.STUDENT:
        raise ForbiddenError("Student access required")
    return actor


async def require_instructor(
    actor: Actor = Depends(get_current_actor)
) -> Actor:
    """Get current instructor"""
    if actor.role != Role.INSTRUCTOR:
        raise ForbiddenError("Instructor access required")
    return actor


async def require_admin(
    actor: Actor = Depends(get_current_actor)
) -> Actor:
    """Get current admin"""
    if actor.role != Role.ADMIN:
        raise ForbiddenError("Admin access required")
    return actor


async def require_student_or_instructor(
    actor: Actor = Depends(get_current_actor)
) -> Actor:
    if actor.role not in (Role.STUDENT, Role.INSTRUCTOR):
        raise ForbiddenError("Student or instructor access required")
    return actor
