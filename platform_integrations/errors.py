# Platform Integrations Errors
"""
Error taxonomy for the Platform Integrations service.

Every failure that crosses a module boundary is one of the exceptions
below. Each carries an ``ErrorCode`` so that callers (the REST layer,
the tagged ``ProjectDataResult``) can branch on the kind of failure
without inspecting messages.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Error codes for the kinds of failure the service distinguishes"""
    AUTHENTICATION_ERROR = "AUTH_001"
    NOT_FOUND = "NOT_FOUND_001"
    CONNECTION_NOT_FOUND = "NOT_FOUND_002"
    CONFIGURATION_ERROR = "CONFIG_001"
    DECRYPTION_ERROR = "CONFIG_002"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_001"
    TRANSFORMATION_ERROR = "TRANSFORM_001"
    CONNECTION_INACTIVE = "CONN_001"
    UNKNOWN_ERROR = "UNKNOWN_001"


class IntegrationError(Exception):
    """Base exception for the Platform Integrations service"""
    
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary"""
        return {
            'error_code': self.error_code.value,
            'message': self.message,
            'details': self.details
        }


class AuthenticationError(IntegrationError):
    """Upstream platform rejected the stored credentials"""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.AUTHENTICATION_ERROR, details)


class NotFoundError(IntegrationError):
    """Upstream resource (project, board) does not exist or is not visible"""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.NOT_FOUND, details)


class ConnectionNotFoundError(NotFoundError):
    """No connection with this id exists for the requesting user"""
    
    def __init__(self, message: str = "Connection not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.error_code = ErrorCode.CONNECTION_NOT_FOUND


class ConfigurationError(IntegrationError):
    """Missing or malformed platform configuration"""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class DecryptionError(ConfigurationError):
    """Stored credentials could not be decrypted"""
    
    def __init__(self, message: str = "Stored credentials could not be decrypted",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.error_code = ErrorCode.DECRYPTION_ERROR


class UpstreamUnavailableError(IntegrationError):
    """Network failure, timeout, rate limit or 5xx from the platform"""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.UPSTREAM_UNAVAILABLE, details)


class TransformationError(IntegrationError):
    """Raw payload could not be mapped to the canonical model"""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.TRANSFORMATION_ERROR, details)


class ConnectionInactiveError(IntegrationError):
    """Connection exists but is not in the connected state"""
    
    def __init__(self, status: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Connection is not active (status: {status})",
            ErrorCode.CONNECTION_INACTIVE,
            details
        )
        self.status = status


def error_handler(error: Exception) -> Dict[str, Any]:
    """Convert any exception into a client-safe error dictionary"""
    if isinstance(error, IntegrationError):
        return {
            'success': False,
            'message': error.message,
            'errorCode': error.error_code.value,
        }
    
    logger.error(f"Unexpected error: {error}", exc_info=True)
    return {
        'success': False,
        'message': "An unexpected error occurred",
        'errorCode': ErrorCode.UNKNOWN_ERROR.value,
    }
