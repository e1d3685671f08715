"""
Identity Store
==============

Resolves a bearer credential to an ``Actor``. Everything past this point
compares ids as ``int``; string ids from tokens or paths are normalized here.
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sptrack.core.exceptions import UnauthenticatedError
from sptrack.core.security import decode_token
from sptrack.models import Student, Instructor, Admin


class Role(str, enum.Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


ROLE_MODELS = {
    Role.STUDENT: Student,
    Role.INSTRUCTOR: Instructor,
    Role.ADMIN: Admin,
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation"""
    id: int
    role: Role

    @property
    def label(self) -> str:
        return f"{self.role.value}:{self.id}"


def normalize_id(value: Any) -> Optional[int]:
    """
    Coerce an id to int.

    Returns None for anything that is not a non-negative integer or a
    string of digits (bools included, they are not ids).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str):
        value = value.strip()
        # isdigit() alone accepts superscripts and other non-ASCII digits
        if value.isascii() and value.isdigit():
            return int(value)
    return None


def parse_role(value: Any) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        return None


async def resolve_actor(db: AsyncSession, token: str) -> Actor:
    """
    Resolve an access token to the actor it was issued for.

    Raises:
        UnauthenticatedError: token invalid, claims malformed, or the
            account no longer exists
    """
    payload = decode_token(token)

    actor_id = normalize_id(payload.get("sub"))
    role = parse_role(payload.get("role"))
    if actor_id is None or role is None:
        raise UnauthenticatedError("Invalid token payload")

    model = ROLE_MODELS[role]
    result = await db.execute(select(model.id).where(model.id == actor_id))
    if result.scalar_one_or_none() is None:
        raise UnauthenticatedError("Account no longer exists")

    return Actor(id=actor_id, role=role)
