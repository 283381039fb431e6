"""Typed failures raised by the tree engine and the auth service.

Each error carries the HTTP status the API layer renders it with, so the
services stay free of transport concerns.
"""


class TreeNoteError(Exception):
    status_code = 500
    code = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(TreeNoteError):
    status_code = 404
    code = "not_found"


class InvalidOperation(TreeNoteError):
    status_code = 400
    code = "invalid_operation"


class CycleDetected(TreeNoteError):
    status_code = 409
    code = "cycle_detected"


class ConstraintViolation(TreeNoteError):
    status_code = 409
    code = "constraint_violation"


class RegistrationClosed(TreeNoteError):
    status_code = 403
    code = "registration_closed"
