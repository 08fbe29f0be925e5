# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Error types for functional error handling.

This module defines all error types used throughout gdfmt. Pipeline
operations return Result[Value, Error] types; errors are plain frozen
values, never raised through the formatting stages.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal


# =============================================================================
# Base Error Types
# =============================================================================

@dataclass(frozen=True)
class GdfmtError:
    """Base error type for all gdfmt errors."""
    message: str

    def __str__(self) -> str:
        return self.message


# =============================================================================
# File Operation Errors
# =============================================================================

@dataclass(frozen=True)
class FileError(GdfmtError):
    """File operation error."""
    path: Path
    operation: Literal["read", "write", "stat"]
    original_error: str | None = None
    permission_error: bool = False
    not_found: bool = False


# =============================================================================
# Pipeline Errors
# =============================================================================

@dataclass(frozen=True)
class FormattingError(GdfmtError):
    """The external formatting engine rejected or could not process the input."""
    engine: str = "topiary"
    exit_code: int | None = None
    stderr: str = ""
    timeout: bool = False


@dataclass(frozen=True)
class SafetyError(GdfmtError):
    """Formatted output no longer has the structure of the input."""


@dataclass(frozen=True)
class ReorderError(GdfmtError):
    """The reorder pass failed. Never fatal to a request."""


# =============================================================================
# Transport Errors
# =============================================================================

@dataclass(frozen=True)
class TransportError(GdfmtError):
    """Daemon/client framing or connection error."""
    operation: Literal["connect", "read", "write", "decode"]
    truncated: bool = False


# =============================================================================
# Concurrency Errors
# =============================================================================

@dataclass(frozen=True)
class WorkerError(GdfmtError):
    """Worker pool error."""
    worker_id: int | None = None
    path: Path | None = None
    inner_error: GdfmtError | None = None


# =============================================================================
# Configuration Errors
# =============================================================================

@dataclass(frozen=True)
class ConfigError(GdfmtError):
    """Configuration error."""
    config_file: Path | None = None
    key: str | None = None
    invalid_value: str | None = None


# =============================================================================
# Error Helpers
# =============================================================================

def file_not_found(path: Path, operation: Literal["read", "write", "stat"] = "read") -> FileError:
    """Create a file not found error."""
    return FileError(
        message=f"File not found: {path}",
        path=path,
        operation=operation,
        not_found=True
    )


def permission_denied(path: Path, operation: Literal["read", "write", "stat"]) -> FileError:
    """Create a permission denied error."""
    return FileError(
        message=f"Permission denied: {operation} {path}",
        path=path,
        operation=operation,
        permission_error=True
    )


def engine_timeout(engine: str, seconds: float) -> FormattingError:
    """Create a formatting engine timeout error."""
    return FormattingError(
        message=f"{engine} timed out after {seconds:g}s",
        engine=engine,
        timeout=True
    )


def structure_changed() -> SafetyError:
    """Create the safe-mode structure mismatch error."""
    return SafetyError(
        message="Trees are different: formatting changed the code structure"
    )
