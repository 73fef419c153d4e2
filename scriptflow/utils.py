"""Utility functions and errors for scriptflow."""

import logging
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class ScriptflowError(Exception):
    """Base exception for scriptflow."""
    pass


class ConfigurationError(ScriptflowError):
    """Raised when a graph or pipeline config cannot be turned into steps."""
    pass


class UnknownStepError(ConfigurationError):
    """Raised when a step type id is not in the registry."""

    def __init__(self, step_id: str, available: Iterable[str] = ()):
        self.step_id = step_id
        available = ", ".join(sorted(available))
        message = f"Unknown step type: {step_id}"
        if available:
            message += f". Available: {available}"
        super().__init__(message)


class CircularDependencyError(ConfigurationError):
    """Raised when the graph's connections form a cycle."""

    def __init__(self, node_id: str, cycle: Optional[list[str]] = None):
        self.node_id = node_id
        self.cycle = cycle or [node_id]
        super().__init__(
            f"Circular dependency detected involving node {node_id} "
            f"({' -> '.join(self.cycle)})"
        )


class ValidationError(ScriptflowError):
    """Raised before a run when required parameters are missing.

    Carries one human-readable message per violation.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


class StepExecutionError(ScriptflowError):
    """A single step failed. Recorded by the run driver, never fatal to the run."""

    def __init__(
        self,
        step_key: str,
        message: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        self.step_key = step_key
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)


class NoOutputProducedError(ScriptflowError):
    """Raised when every step failed and no final output could be copied."""
    pass


def is_empty(value) -> bool:
    """Check whether a parameter value counts as unset."""
    return value is None or value == ""


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1h 23m 45s")
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")

    return " ".join(parts)


VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv"}


def cleanup_intermediates(
    paths: Iterable[Path],
    keep: Iterable[Path] = (),
) -> list[Path]:
    """Delete intermediate media files left behind by a run.

    Only files with a video extension are removed. Anything in ``keep``
    (typically the final output) is left alone.

    Args:
        paths: Candidate intermediate files
        keep: Files that must survive

    Returns:
        List of files that were removed
    """
    keep_resolved = {Path(p).resolve() for p in keep}
    removed = []

    for path in paths:
        path = Path(path)
        if path.suffix.lower() not in VIDEO_EXTENSIONS:
            continue
        if path.resolve() in keep_resolved or not path.is_file():
            continue
        path.unlink()
        removed.append(path)
        logger.info(f"Cleaned up intermediate file: {path.name}")

    return removed
