from fastapi import HTTPException, status


class AppException(HTTPException):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict = None):
        self.error_code = code
        self.error_message = message
        self.error_details = details
        super().__init__(
            status_code=status_code,
            detail={
                "error": {
                    "code": code,
                    "message": message,
                    "details": details,
                }
            },
        )


class InvalidInputError(AppException):
    def __init__(self, message: str, field: str = None, details: dict = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(
            code="INVALID_INPUT",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details or None,
        )


class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: str = None, code: str = "NOT_FOUND", message: str = None):
        details = {"entity": entity}
        if entity_id:
            details["id"] = entity_id
        super().__init__(
            code=code,
            message=message or f"{entity} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class CropNotFoundError(NotFoundError):
    def __init__(self, crop_id: str):
        super().__init__(
            "Crop",
            crop_id,
            code="CROP_NOT_FOUND",
            message="Crop not found or unable to fetch crop data",
        )


class ConflictError(AppException):
    def __init__(self, message: str, details: dict = None):
        super().__init__(
            code="CONFLICT",
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class AlreadyFinalizedError(AppException):
    def __init__(self, current: str, action: str):
        super().__init__(
            code="ALREADY_FINALIZED",
            message=f"Cannot {action}. Request is already {current}",
            status_code=status.HTTP_409_CONFLICT,
            details={"current": current, "action": action},
        )


class StorageError(AppException):
    def __init__(self, message: str = "Failed to store media", details: dict = None):
        super().__init__(
            code="STORAGE_ERROR",
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
        )


class UploadFailedError(AppException):
    def __init__(self, message: str = "Failed to upload photos", details: dict = None):
        super().__init__(
            code="UPLOAD_FAILED",
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
        )


class UpstreamError(AppException):
    def __init__(self, service: str, message: str = None):
        super().__init__(
            code="UPSTREAM_ERROR",
            message=message or f"{service} is unavailable",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": service},
        )


class IdentityExhaustedError(AppException):
    def __init__(self, attempts: int):
        super().__init__(
            code="IDENTITY_EXHAUSTED",
            message="Unable to generate a unique request id",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"attempts": attempts},
        )
