"""
Custom exceptions for motionflow.
Provides a hierarchy of exceptions shared by the workflow engine, the
interactive generation workflow and the intent routing layer.
"""


class MotionFlowError(Exception):
    """Base exception for all motionflow errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(MotionFlowError):
    """Raised when the application configuration is invalid."""
    pass


class ValidationError(MotionFlowError):
    """Raised when required session-initiation fields are missing."""
    pass


class ClassificationError(MotionFlowError):
    """Raised when the AI classification tier returns unusable data."""
    pass


class EnrichmentDegradation(MotionFlowError):
    """Raised when search, crawl or enrichment fails and a fallback is used."""
    pass


class GenerationError(MotionFlowError):
    """Raised when the final generation call fails or returns no content."""
    pass


class SessionNotFoundError(MotionFlowError):
    """Raised when a session or its checkpoint is unknown or expired."""
    pass


class WorkflowError(MotionFlowError):
    """Raised when a workflow graph is malformed or its execution fails."""
    pass
