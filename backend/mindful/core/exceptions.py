"""
Mindful Companion - Exception Hierarchy

Structured exceptions for consistent error handling across the system.
All exceptions include error codes for API responses.
"""

from typing import Optional


class MindfulError(Exception):
    """Base exception for all Mindful Companion errors."""

    code: str = "UNKNOWN_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Error body for API responses."""
        return {"code": self.code, "message": self.message}


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(MindfulError):
    """Send attempt rejected before reaching the assistant."""
    code = "VALIDATION_ERROR"
    status_code = 400


class EmptyMessageError(ValidationError):
    """Message text is empty after trimming."""
    code = "EMPTY_MESSAGE"


class ConsentRequiredError(ValidationError):
    """User has not consented to processing."""
    code = "CONSENT_REQUIRED"


# =============================================================================
# Assistant Transport Errors
# =============================================================================

class AssistantTransportError(MindfulError):
    """Network failure, non-success status, or malformed assistant response."""
    code = "ASSISTANT_UNAVAILABLE"
    status_code = 502


# =============================================================================
# Session Errors
# =============================================================================

class SessionError(MindfulError):
    """Error related to session management."""
    code = "SESSION_ERROR"
    status_code = 400


class SessionNotFoundError(SessionError):
    """Session not found."""
    code = "SESSION_NOT_FOUND"
    status_code = 404


class SessionLimitError(SessionError):
    """Maximum concurrent sessions exceeded."""
    code = "SESSION_LIMIT_EXCEEDED"
    status_code = 429


class SessionBusyError(SessionError):
    """A round trip is already in flight for this session."""
    code = "SESSION_BUSY"
    status_code = 409


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(MindfulError):
    """Configuration error."""
    code = "CONFIGURATION_ERROR"
    status_code = 500
