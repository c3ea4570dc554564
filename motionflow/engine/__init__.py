"""
Graph workflow engine with per-field merge rules and suspend/resume.
"""
from .checkpoint import Checkpoint, CheckpointStore, InMemoryCheckpointStore
from .graph import (
    START,
    END,
    INTERRUPT_KEY,
    RESUME_KEY,
    OVERWRITE,
    SHALLOW_MERGE,
    Continue,
    Suspend,
    ResumeCommand,
    MergePolicy,
    WorkflowGraph,
    CompiledWorkflow,
    suspend,
)

__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "InMemoryCheckpointStore",
    "START",
    "END",
    "INTERRUPT_KEY",
    "RESUME_KEY",
    "OVERWRITE",
    "SHALLOW_MERGE",
    "Continue",
    "Suspend",
    "ResumeCommand",
    "MergePolicy",
    "WorkflowGraph",
    "CompiledWorkflow",
    "suspend",
]
