from sptrack.modules.auth.identity import Actor, Role, normalize_id, resolve_actor
from sptrack.modules.auth.dependencies import (
    get_current_actor,
    require_student,
    require_instructor,
    require_admin,
    require_student_or_instructor,
)

__all__ = [
    "Actor",
    "Role",
    "normalize_id",
    "resolve_actor",
    "get_current_actor",
    "require_student",
    "require_instructor",
    "require_admin",
    "require_student_or_instructor",
]
