"""
Service errors

Every failure a service operation can report is one of these classes.
Each carries a machine-checkable `kind`, a human readable message and the
HTTP status the API answers with.
"""

from typing import Dict, List, Optional

REQUEST_LOCATIONS = ("body", "query", "path", "header")


class ServiceError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self) -> dict:
        return {
            "success": False,
            "kind": self.kind,
            "message": self.message,
            "errors": self.errors,
        }


class ValidationError(ServiceError):
    kind = "validation"
    status_code = 400

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        errors: Dict[str, List[str]] = {}
        for err in exc.errors():
            loc = tuple(err.get("loc", ()))
            # Request errors are located as ("body", field) or ("query", field)
            if loc and loc[0] in REQUEST_LOCATIONS:
                loc = loc[1:]
            field = ".".join(str(part) for part in loc) or "__root__"
            errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
        summary = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        return cls(summary or "Invalid input", errors)


class ConflictError(ServiceError):
    kind = "conflict"
    status_code = 409

    def __init__(self, field: str, message: Optional[str] = None):
        message = message or f"{field.capitalize()} is already taken"
        super().__init__(message, {field: [message]})
        self.field = field


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = 404


class RejectedError(ServiceError):
    kind = "rejected"
    status_code = 403


class AuthError(ServiceError):
    kind = "auth"
    status_code = 401


class StoreError(ServiceError):
    kind = "store"
    status_code = 503


class UnavailableError(ServiceError):
    kind = "unavailable"
    status_code = 503
