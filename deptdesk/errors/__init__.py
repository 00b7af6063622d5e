"""
DeptDesk - Error kinds
Domain modules raise these; the server renders them as {"error": message}.
"""


class DeptDeskError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DeptDeskError):
    """Missing or malformed fields, or a cross-entity mismatch."""
    status_code = 400


class AuthenticationError(DeptDeskError):
    """Missing, invalid or expired token; bad credentials."""
    status_code = 401


class AuthorizationError(DeptDeskError):
    """Caller's department may not perform the operation."""
    status_code = 403


class NotFoundError(DeptDeskError):
    status_code = 404


class ConflictError(DeptDeskError):
    status_code = 409
