from pydantic import BaseModel


class ApiErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | list | str | None = None
    trace_id: str | None = None


class ApiValidationErrorItem(BaseModel):
    field: str | None = None
    message: str
    type: str
    loc: list[str | int] | None = None


class ApiValidationErrorDetails(BaseModel):
    errors: list[ApiValidationErrorItem]


class ApiValidationErrorResponse(ApiErrorResponse):
    details: ApiValidationErrorDetails | dict | None = None


class ReceiptLineSaveFailureDetails(BaseModel):
    errors: list[str]
    message: str
    saved_count: int


class ReceiptLinesSaveFailedResponse(ApiErrorResponse):
    details: ReceiptLineSaveFailureDetails


class MissingPhotosDetails(BaseModel):
    missing_slots: list[str]


class MissingPhotosResponse(ApiErrorResponse):
    details: MissingPhotosDetails


class DeleteFailedDetails(BaseModel):
    plan_id: str
    cause: str


class DeleteFailedResponse(ApiErrorResponse):
    details: DeleteFailedDetails
