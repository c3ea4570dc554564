"""
Utility modules for motionflow.
"""
from .logging_config import get_logger, level_from_name, setup_logging
from .exceptions import (
    MotionFlowError,
    ConfigurationError,
    ValidationError,
    ClassificationError,
    EnrichmentDegradation,
    GenerationError,
    SessionNotFoundError,
    WorkflowError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "level_from_name",
    "MotionFlowError",
    "ConfigurationError",
    "ValidationError",
    "ClassificationError",
    "EnrichmentDegradation",
    "GenerationError",
    "SessionNotFoundError",
    "WorkflowError",
]
