"""
Exceptions raised by the subject load services.
"""

from typing import Optional, Any, Dict


class SubjectLoadError(Exception):
    """Base exception for all subject load errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class NotFoundError(SubjectLoadError):
    """Raised when a requested record does not exist in the snapshot."""
    pass


class ValidationError(SubjectLoadError):
    """Raised when submitted data fails validation."""
    pass


class ConfigurationError(SubjectLoadError):
    """Raised when reference data is inconsistent, e.g. a prerequisite cycle."""
    pass
