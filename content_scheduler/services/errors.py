"""
Errors raised by the scheduling service.

Each carries the HTTP status it maps to; `content_scheduler.main` renders them as
``{"error": message}`` (plus ``details`` for validation failures).
"""


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"error": self.message}


class Unauthorized(SchedulingError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(SchedulingError):
    status_code = 403


class ValidationError(SchedulingError):
    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__("Invalid request")
        self.details = [{"field": field, "message": message}]

    def to_body(self) -> dict:
        return {"error": self.message, "details": self.details}


class InvalidState(SchedulingError):
    status_code = 400


class NotFound(SchedulingError):
    status_code = 404


class Conflict(SchedulingError):
    status_code = 409


class InternalError(SchedulingError):
    status_code = 500
