"""
Shared error handling for the web chat settings service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class WebchatException(Exception):
    """Base exception for web chat settings errors."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(WebchatException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class SettingNotFoundError(WebchatException):
    """A workgroup has no value for the requested setting."""

    status_code = 404

    def __init__(self, key: str, workgroup: str):
        super().__init__(
            "SETTING_NOT_FOUND",
            f"Setting '{key}' not available for workgroup {workgroup}",
            {"key": key, "workgroup": workgroup}
        )


class ExternalServiceError(WebchatException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class WorkgroupServiceError(ExternalServiceError):
    """Transport or protocol failure talking to the workgroup service."""

    def __init__(self, message: str = "Workgroup service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("workgroup_service", message, details)


class AssetUnavailableError(WebchatException):
    """A static asset could not be read."""

    status_code = 500

    def __init__(self, path: str, message: str = "Asset unavailable"):
        super().__init__("ASSET_UNAVAILABLE", message, {"path": path})
