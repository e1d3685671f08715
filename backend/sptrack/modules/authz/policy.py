"""
Authorization Engine
====================

Two layers:

1. ``can_*`` predicates. Pure, never raise; a missing resource or a
   malformed actor is simply ``False``.
2. ``decide_*`` functions, one per resource family. They return an
   ``AuthzResult`` carrying ALLOW, DENY_VISIBLE (rendered as 403) or
   DENY_HIDDEN (rendered as 404) plus a reason. Which denial a family uses
   is decided here and nowhere else.

Services call ``enforce(decide_...(...))``.

Disclosure per family:
    subject catalog, accounts   DENY_VISIBLE
    instructor subject          DENY_HIDDEN
    section / enrollment        DENY_VISIBLE once the section exists
    upload mutation             DENY_VISIBLE for non-students,
                                DENY_HIDDEN for students not owning it
    roster, upload viewing,
    statistics                  DENY_VISIBLE
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional

from sptrack.core.exceptions import ForbiddenError, NotFoundError
from sptrack.core.logging_config import logger
from sptrack.modules.auth.identity import Actor, Role, normalize_id


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY_VISIBLE = "deny_visible"
    DENY_HIDDEN = "deny_hidden"


@dataclass(frozen=True)
class AuthzResult:
    decision: Decision
    reason: str
    resource: str

    @property
    def allowed(self) -> bool:
        return self.decision == Decision.ALLOW


# ==================== Predicates ====================

def _role_of(actor: Any) -> Optional[Role]:
    role = getattr(actor, "role", None)
    try:
        return Role(role) if role is not None else None
    except ValueError:
        return None


def _id_of(obj: Any, attr: str = "id") -> Optional[int]:
    return normalize_id(getattr(obj, attr, None))


def _is(actor: Any, role: Role) -> bool:
    return _role_of(actor) == role and _id_of(actor) is not None


def can_manage_subject_catalog(actor: Any) -> bool:
    return _is(actor, Role.ADMIN)


def can_manage_accounts(actor: Any) -> bool:
    return _is(actor, Role.ADMIN)


def can_manage_instructor_subject(actor: Any, link: Any) -> bool:
    if link is None or not _is(actor, Role.INSTRUCTOR):
        return False
    owner = _id_of(link, "instructor_id")
    return owner is not None and owner == _id_of(actor)


def can_manage_section(actor: Any, section: Any) -> bool:
    # A section carries its parent's key, so the parent check applies directly
    return can_manage_instructor_subject(actor, section)


def can_mutate_upload(actor: Any, upload: Any) -> bool:
    if upload is None or not _is(actor, Role.STUDENT):
        return False
    owner = _id_of(upload, "student_id")
    return owner is not None and owner == _id_of(actor)


def can_view_uploads_of(actor: Any, student_id: Any) -> bool:
    if _is(actor, Role.INSTRUCTOR):
        return True
    target = normalize_id(student_id)
    return _is(actor, Role.STUDENT) and target is not None and target == _id_of(actor)


def can_view_roster(actor: Any) -> bool:
    return _is(actor, Role.ADMIN) or _is(actor, Role.INSTRUCTOR)


# ==================== Decisions ====================

def _result(family: str, actor: Any, decision: Decision, reason: str, resource: str) -> AuthzResult:
    label = actor.label if isinstance(actor, Actor) else None
    logger.log_authz_decision(family, decision.value, reason, actor=label)
    return AuthzResult(decision=decision, reason=reason, resource=resource)


def decide_subject_catalog(actor: Any) -> AuthzResult:
    if can_manage_subject_catalog(actor):
        return _result("subject_catalog", actor, Decision.ALLOW, "admin", "Subject")
    return _result("subject_catalog", actor, Decision.DENY_VISIBLE, "not an admin", "Subject")


def decide_accounts(actor: Any) -> AuthzResult:
    if can_manage_accounts(actor):
        return _result("accounts", actor, Decision.ALLOW, "admin", "Account")
    return _result("accounts", actor, Decision.DENY_VISIBLE, "not an admin", "Account")


def decide_instructor_subject(actor: Any, link: Any) -> AuthzResult:
    family = "instructor_subject"
    if link is None:
        return _result(family, actor, Decision.DENY_HIDDEN, "no such offering", "Instructor subject")
    if can_manage_instructor_subject(actor, link):
        return _result(family, actor, Decision.ALLOW, "owner", "Instructor subject")
    return _result(family, actor, Decision.DENY_HIDDEN, "not the owning instructor", "Instructor subject")


def decide_section(actor: Any, section: Any) -> AuthzResult:
    family = "section"
    if section is None:
        return _result(family, actor, Decision.DENY_HIDDEN, "no such section", "Section")
    if can_manage_section(actor, section):
        return _result(family, actor, Decision.ALLOW, "owner of parent offering", "Section")
    return _result(family, actor, Decision.DENY_VISIBLE, "not the owning instructor", "Section")


def decide_upload_mutation(actor: Any, upload: Any) -> AuthzResult:
    family = "upload_mutation"
    if not _is(actor, Role.STUDENT):
        return _result(family, actor, Decision.DENY_VISIBLE, "only students modify uploads", "Upload")
    if upload is None:
        return _result(family, actor, Decision.DENY_HIDDEN, "no such upload", "Upload")
    if can_mutate_upload(actor, upload):
        return _result(family, actor, Decision.ALLOW, "owner", "Upload")
    return _result(family, actor, Decision.DENY_HIDDEN, "not the owning student", "Upload")


def decide_roster(actor: Any) -> AuthzResult:
    if can_view_roster(actor):
        return _result("roster", actor, Decision.ALLOW, "admin or instructor", "Student")
    return _result("roster", actor, Decision.DENY_VISIBLE, "students cannot list other students", "Student")


def decide_upload_view(actor: Any, student_id: Any) -> AuthzResult:
    family = "upload_view"
    if can_view_uploads_of(actor, student_id):
        return _result(family, actor, Decision.ALLOW, "instructor or self", "Upload")
    return _result(family, actor, Decision.DENY_VISIBLE, "not an instructor or the student", "Upload")


def decide_upload_stats(actor: Any) -> AuthzResult:
    family = "upload_stats"
    if _is(actor, Role.STUDENT) or _is(actor, Role.INSTRUCTOR):
        return _result(family, actor, Decision.ALLOW, "student or instructor", "Upload")
    return _result(family, actor, Decision.DENY_VISIBLE, "role has no statistics view", "Upload")


def enforce(result: AuthzResult) -> None:
    """Raise the error matching a denied decision; no-op on ALLOW"""
    if result.decision == Decision.ALLOW:
        return
    if result.decision == Decision.DENY_HIDDEN:
        raise NotFoundError(result.resource)
    raise ForbiddenError()
