"""Data models for qsysbridge.

This module exports the core data structures used throughout the application.
"""

from qsysbridge.models.action import (
    ActionDefinition,
    ActionRunResult,
    ActionRunStatus,
    CommandOutcome,
    RefreshScope,
)
from qsysbridge.models.diagnostic import Diagnostic, Severity
from qsysbridge.models.document import EditorTab, OpenDocument
from qsysbridge.models.resource import REMOTE_KINDS, ResourceIdentity, ResourceKind

__all__ = [
    "REMOTE_KINDS",
    "ActionDefinition",
    "ActionRunResult",
    "ActionRunStatus",
    "CommandOutcome",
    "Diagnostic",
    "EditorTab",
    "OpenDocument",
    "RefreshScope",
    "ResourceIdentity",
    "ResourceKind",
    "Severity",
]
