"""
Custom Exception Classes for the Job Assistant API
"""
from typing import Dict, Any
from fastapi import HTTPException


class AssistantBaseException(Exception):
    """Base exception for the Job Assistant API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(AssistantBaseException):
    """Raised when request data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class NotFoundError(AssistantBaseException):
    """Raised when a requested resource does not exist"""

    def __init__(self, message: str, resource: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class DatabaseError(AssistantBaseException):
    """Raised when store operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ModelError(AssistantBaseException):
    """Raised when language model operations fail"""

    def __init__(self, message: str, model_name: str = None, error_code: str = "MODEL_ERROR", **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class CompletionError(ModelError):
    """Raised when a text completion call fails or returns no usable payload"""

    def __init__(self, message: str, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="COMPLETION_ERROR", details=details, **kwargs)


class ProcessingError(AssistantBaseException):
    """Raised when resume or job processing fails"""

    def __init__(self, message: str, document_id: str = None, document_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if document_id:
            details['document_id'] = document_id
        if document_type:
            details['document_type'] = document_type
        super().__init__(message, error_code="PROCESSING_ERROR", details=details, **kwargs)


class AuthenticationError(AssistantBaseException):
    """Raised when the caller cannot be identified"""

    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: AssistantBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        ValidationError: 400,
        AuthenticationError: 401,
        NotFoundError: 404,
        DatabaseError: 500,
        ModelError: 500,
        CompletionError: 502,
        ProcessingError: 500,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)


# Exception context manager for better error handling
class ExceptionContext:
    """Context manager for handling exceptions with additional context"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            if self.logger:
                self.logger.error(
                    f"Operation failed: {self.operation} - {exc_val}",
                    extra={**self.context, "exception_type": exc_type.__name__}
                )

            # Re-raise custom exceptions as-is
            if isinstance(exc_val, AssistantBaseException):
                return False

            # Wrap other exceptions
            if isinstance(exc_val, (KeyError, ValueError, TypeError)):
                raise ValidationError(
                    f"Validation error in {self.operation}: {str(exc_val)}",
                    details=dict(self.context),
                    cause=exc_val
                ) from exc_val
            elif "database" in str(exc_val).lower() or "mongo" in str(exc_val).lower():
                raise DatabaseError(
                    f"Database error in {self.operation}: {str(exc_val)}",
                    operation=self.operation,
                    details=dict(self.context),
                    cause=exc_val
                ) from exc_val
            else:
                raise ProcessingError(
                    f"Processing error in {self.operation}: {str(exc_val)}",
                    details=dict(self.context),
                    cause=exc_val
                ) from exc_val
        else:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)

        return False
