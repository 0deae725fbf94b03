"""
Error types for trainsmart

Errors log themselves on creation. `user_message` is the text that ends up
in a toast notification or an API error body.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class TrainSmartError(Exception):
    """Root of the trainsmart error tree; carries a request id and UTC timestamp"""

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        extra = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' clashes with LogRecord
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }
        if self.cause:
            extra["cause"] = str(self.cause)
        logger.error(f"{self.__class__.__name__}: {self.message}", extra=extra, exc_info=self.cause)

    def to_dict(self) -> Dict[str, Any]:
        """Body of an API error response"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


def _merged_context(kwargs: Dict[str, Any], **fields) -> Dict[str, Any]:
    return {**fields, **(kwargs.pop("context", None) or {})}


# ==========================================
# Input
# ==========================================

class ValidationError(TrainSmartError):
    """Bad input, such as a negative XP grant or an empty log to analyze"""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None, **kwargs):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context=_merged_context(kwargs, field=field, value=value),
            **kwargs
        )


# ==========================================
# Document store
# ==========================================

class DatabaseError(TrainSmartError):
    pass


class ConnectionError(DatabaseError):
    """Document store unreachable; local state keeps the change"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="Your data can't be reached right now. Changes are kept until sync returns.",
            **kwargs
        )


class QueryError(DatabaseError):
    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        self.query = query
        super().__init__(
            message=message,
            user_message="We couldn't sync your data. Please try again.",
            context=_merged_context(kwargs, query=query),
            **kwargs
        )


class RecordNotFoundError(DatabaseError):
    def __init__(self, message: str, record_type: Optional[str] = None, record_id: Optional[str] = None, **kwargs):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context=_merged_context(kwargs, record_type=record_type, record_id=record_id),
            **kwargs
        )


# ==========================================
# Model calls
# ==========================================

class ExternalAPIError(TrainSmartError):
    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
        **kwargs
    ):
        self.service = service
        self.status_code = status_code
        super().__init__(
            message=message,
            user_message=user_message or f"{service or 'An outside service'} is unavailable. Please try again later.",
            context=_merged_context(kwargs, service=service, status_code=status_code),
            **kwargs
        )


class AIGenerationError(ExternalAPIError):
    """A flow failed or its output broke the output schema"""

    def __init__(self, message: str, flow: Optional[str] = None, **kwargs):
        self.flow = flow
        kwargs["context"] = {"flow": flow, **(kwargs.get("context") or {})}
        super().__init__(
            message=message,
            service="AI generation",
            user_message="We couldn't generate that right now. Please try again.",
            **kwargs
        )


# ==========================================
# Access and setup
# ==========================================

class AuthenticationError(TrainSmartError):
    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message=message,
            user_message="Authentication failed. Please check your credentials.",
            **kwargs
        )


class ConfigurationError(TrainSmartError):
    """Missing or malformed setting in the environment"""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The service is misconfigured. Please contact support.",
            context=_merged_context(kwargs, config_key=config_key),
            **kwargs
        )


def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> TrainSmartError:
    """Map a psycopg or pydantic-ai error onto the trainsmart error tree"""
    import psycopg
    from pydantic_ai.exceptions import AgentRunError, UnexpectedModelBehavior

    if isinstance(error, TrainSmartError):
        return error

    details = dict(user_id=user_id, operation=operation, context=context, cause=error)
    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(message=f"Database connection failed: {error}", **details)
    if isinstance(error, psycopg.Error):
        return QueryError(message=f"Database query failed: {error}", **details)
    if isinstance(error, (AgentRunError, UnexpectedModelBehavior)):
        return AIGenerationError(message=f"Model run failed: {error}", flow=operation, **details)
    return TrainSmartError(message=f"{operation} failed: {error}", **details)
