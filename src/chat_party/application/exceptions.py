from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    code = "not_found"


class ForbiddenError(AppError):
    code = "forbidden"


class NotMemberError(ForbiddenError):
    code = "not_member"


class ConflictError(AppError):
    code = "conflict"


class ValidationError(AppError):
    code = "validation_error"
