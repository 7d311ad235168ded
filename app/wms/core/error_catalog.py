from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    ORG_SCOPE_REQUIRED = ErrorDefinition(
        "ORG_SCOPE_REQUIRED",
        "Organization scope is required",
        status.HTTP_403_FORBIDDEN,
    )
    CROSS_ORG_ACCESS_DENIED = ErrorDefinition(
        "CROSS_ORG_ACCESS_DENIED",
        "Cross-organization access denied",
        status.HTTP_403_FORBIDDEN,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    RESOURCE_NOT_FOUND = ErrorDefinition(
        "RESOURCE_NOT_FOUND",
        "Resource not found",
        status.HTTP_404_NOT_FOUND,
    )
    INBOUND_ALREADY_PROCESSED = ErrorDefinition(
        "INBOUND_ALREADY_PROCESSED",
        "Inbound is already processed and cannot be modified",
        status.HTTP_409_CONFLICT,
    )
    INBOUND_DELETE_FAILED = ErrorDefinition(
        "INBOUND_DELETE_FAILED",
        "Inbound plan could not be deleted",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    RECEIPT_FINALIZED = ErrorDefinition(
        "RECEIPT_FINALIZED",
        "Receipt is already confirmed",
        status.HTTP_409_CONFLICT,
    )
    MISSING_REQUIRED_PHOTOS = ErrorDefinition(
        "MISSING_REQUIRED_PHOTOS",
        "Required photos are missing",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    RECEIPT_ALREADY_CONFIRMED = ErrorDefinition(
        "RECEIPT_ALREADY_CONFIRMED",
        "Receipt already confirmed",
        status.HTTP_409_CONFLICT,
    )
    RECEIPT_LINES_SAVE_FAILED = ErrorDefinition(
        "RECEIPT_LINES_SAVE_FAILED",
        "One or more receipt lines failed to save",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INVALID_RECEIPT_STATE = ErrorDefinition(
        "INVALID_RECEIPT_STATE",
        "Receipt is not in a valid state for this action",
        status.HTTP_409_CONFLICT,
    )
    DOCUMENT_NUMBER_EXHAUSTED = ErrorDefinition(
        "DOCUMENT_NUMBER_EXHAUSTED",
        "Could not allocate a unique document number",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    PUTAWAY_TASK_NOT_PENDING = ErrorDefinition(
        "PUTAWAY_TASK_NOT_PENDING",
        "Putaway task is not pending",
        status.HTTP_409_CONFLICT,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
