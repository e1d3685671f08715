from sptrack.modules.authz.policy import (
    Decision,
    AuthzResult,
    can_manage_subject_catalog,
    can_manage_instructor_subject,
    can_manage_section,
    can_mutate_upload,
    can_view_uploads_of,
    can_view_roster,
    can_manage_accounts,
    decide_subject_catalog,
    decide_accounts,
    decide_instructor_subject,
    decide_section,
    decide_upload_mutation,
    decide_roster,
    decide_upload_view,
    decide_upload_stats,
    enforce,
)

__all__ = [
    "Decision",
    "AuthzResult",
    "can_manage_subject_catalog",
    "can_manage_instructor_subject",
    "can_manage_section",
    "can_mutate_upload",
    "can_view_uploads_of",
    "can_view_roster",
    "can_manage_accounts",
    "decide_subject_catalog",
    "decide_accounts",
    "decide_instructor_subject",
    "decide_section",
    "decide_upload_mutation",
    "decide_roster",
    "decide_upload_view",
    "decide_upload_stats",
    "enforce",
]
