"""
Custom Exceptions for the Student Performance Tracking System
=============================================================

Every denial or invariant violation raised by a service is one of these,
so the API layer can render a stable error code and message.

Usage:
    from sptrack.core.exceptions import NotFoundError, ConflictError

    if not section:
        raise NotFoundError("Section")

    if existing:
        raise ConflictError("Student is already enrolled in this section")

Messages of ForbiddenError and NotFoundError never carry record ids.
"""

from typing import Optional, Any, Dict


class TrackerError(Exception):
    """Base exception for all tracker errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class UnauthenticatedError(TrackerError):
    """No resolvable actor for the request"""

    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, code="UNAUTHENTICATED")


class ForbiddenError(TrackerError):
    """Actor resolved but lacks rights on a resource it may know about"""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message, code="FORBIDDEN")


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(TrackerError):
    """
    Resource does not exist, or its existence must not be disclosed
    to the current actor.
    """

    status_code = 404

    def __init__(self, resource_type: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type}
        )


# ============================================
# Invariant Errors (409-type)
# ============================================

class ConflictError(TrackerError):
    """Uniqueness or dependency invariant violated"""

    status_code = 409

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="CONFLICT", details=details)


class NoInstructorsAvailableError(TrackerError):
    """Upload attribution could not resolve any instructor"""

    status_code = 409

    def __init__(self):
        super().__init__(
            "No instructors are available to receive this upload",
            code="NO_INSTRUCTORS_AVAILABLE"
        )


# ============================================
# Validation Errors (400-type)
# ============================================

class InvalidInputError(TrackerError):
    """Input failed a validation the request schema could not express"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="INVALID_INPUT", details=details)


class InvalidTypeError(InvalidInputError):
    """Upload type is not one of the known coursework types"""

    def __init__(self, value: str, allowed_types: list):
        super().__init__(
            f"Invalid type. Must be {', '.join(allowed_types[:-1])}, or {allowed_types[-1]}.",
            field="type"
        )
        self.code = "INVALID_TYPE"
        self.details["allowed_types"] = allowed_types


class InvalidFileTypeError(InvalidInputError):
    """File type not allowed"""

    def __init__(self, filename: str, allowed_extensions: list):
        super().__init__(
            f"Invalid file type. Allowed: {', '.join(allowed_extensions)}",
            field="file"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details["allowed_extensions"] = allowed_extensions


# ============================================
# Storage Errors
# ============================================

class StorageError(TrackerError):
    """Blob storage operation failed"""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message, code="STORAGE_ERROR")
        if key:
            self.details["key"] = key


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: TrackerError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
