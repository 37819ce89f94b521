"""Kernel exception types.

Only ValidationError and TargetNotFoundError ever reach a caller. Content read
failures are caught inside the tracker and degrade a single event.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for tracker kernel errors."""


class ValidationError(TrackerError):
    """An edit was rejected at the boundary; nothing was mutated."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class TargetNotFoundError(TrackerError):
    def __init__(self, target_id: str):
        super().__init__(f"Unknown target: {target_id}")
        self.target_id = target_id


class ContentReadError(TrackerError):
    """Document text could not be read (vanished mid-read, permissions, ...)."""

    def __init__(self, document_path: str, reason: str = ""):
        super().__init__(f"Could not read {document_path}: {reason}" if reason else f"Could not read {document_path}")
        self.document_path = document_path
