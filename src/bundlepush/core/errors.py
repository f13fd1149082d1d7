"""
BundlePush Error System

Design goals:
- Single canonical error code namespace (E#### format only)
- Explicit category per error (not prefix-derived)
- Immutable error_code per class
- Stable exit codes for the CLI trigger
- Machine-safe formatting (no emoji, no decoration)
- Support for structured context dict
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------
# Exit Codes (Process-Level Contract)
# ---------------------------------------------------------------------

class ExitCode(int, Enum):
    """
    Process exit codes used by the command line trigger.
    Library callers get a PublishReport instead.
    """
    OK = 0

    CONFIGURATION_ERROR = 2
    UPLOAD_ERROR = 3
    CLEANUP_ERROR = 4

    INTERNAL_ERROR = 99


# ---------------------------------------------------------------------
# Error Categories (Explicit, Not Derived)
# ---------------------------------------------------------------------

class ErrorCategory(str, Enum):
    CONFIGURATION = "config_error"
    LOCAL_IO = "local_io_error"
    BACKEND = "backend_error"
    JOURNAL = "journal_error"
    INTERNAL = "internal_error"


# ---------------------------------------------------------------------
# Canonical Error Codes (Single Namespace)
# ---------------------------------------------------------------------

class ErrorCode(str, Enum):
    # 1xxx - Configuration
    INVALID_CONFIGURATION = "E1001"
    UNSUPPORTED_BACKEND = "E1002"
    MISSING_CREDENTIALS = "E1003"
    INVALID_PATTERN = "E1004"
    DUPLICATE_PATTERN = "E1005"
    EMPTY_ROUTES = "E1006"

    # 2xxx - Local files
    FILE_READ_FAILED = "E2001"

    # 3xxx - Backend transport
    BACKEND_FAILED = "E3001"

    # 4xxx - Journal / cleanup
    JOURNAL_UNAVAILABLE = "E4001"
    DELETE_FAILED = "E4002"

    # 9xxx - Internal
    INTERNAL_ERROR = "E9001"


# ---------------------------------------------------------------------
# Base Error
# ---------------------------------------------------------------------

@dataclass
class BundlePushError(Exception):
    """
    Base class for all BundlePush domain errors.

    Invariants:
    - error_code is immutable
    - category is explicit
    - exit_code is explicit
    """

    message: str
    error_code: ErrorCode
    category: ErrorCategory
    exit_code: ExitCode
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not isinstance(self.error_code, ErrorCode):
            raise TypeError("error_code must be an ErrorCode enum")

        if not isinstance(self.category, ErrorCategory):
            raise TypeError("category must be an ErrorCategory enum")

        if not isinstance(self.exit_code, ExitCode):
            raise TypeError("exit_code must be an ExitCode enum")

        self.context = self.context or {}

        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    # dataclass(eq=True) would otherwise make errors unhashable, which
    # breaks exception chaining and asyncio.gather bookkeeping.
    __hash__ = Exception.__hash__

    # -----------------------------------------------------------------
    # Structured Output
    # -----------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        """
        JSON-safe representation for CLI output.
        """
        return {
            "code": self.error_code.value,
            "category": self.category.value,
            "message": self.message,
            "context": self.context,
        }

    def format(self) -> str:
        """
        Plain multi-line representation.
        """
        lines = [
            f"{self.__class__.__name__}: {self.message}",
            f"  code: {self.error_code.value}",
            f"  category: {self.category.value}",
        ]

        if self.context:
            lines.append("  context:")
            for k, v in self.context.items():
                lines.append(f"    {k}: {v}")

        return "\n".join(lines)


# ---------------------------------------------------------------------
# Domain-Specific Errors
# ---------------------------------------------------------------------

class ConfigurationError(BundlePushError):
    """Invalid route set or options. Raised before any backend I/O."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_CONFIGURATION,
        index: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=code,
            category=ErrorCategory.CONFIGURATION,
            exit_code=ExitCode.CONFIGURATION_ERROR,
            context={"index": index} if index is not None and index != -1 else None,
            **kwargs,
        )


class FileReadError(BundlePushError):
    def __init__(self, message: str, file_name: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_READ_FAILED,
            category=ErrorCategory.LOCAL_IO,
            exit_code=ExitCode.UPLOAD_ERROR,
            context={"file_name": file_name} if file_name else None,
            **kwargs,
        )


class BackendError(BundlePushError):
    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        name: Optional[str] = None,
        **kwargs,
    ):
        context = {}
        if backend:
            context["backend"] = backend
        if name:
            context["name"] = name
        super().__init__(
            message=message,
            error_code=ErrorCode.BACKEND_FAILED,
            category=ErrorCategory.BACKEND,
            exit_code=ExitCode.UPLOAD_ERROR,
            context=context or None,
            **kwargs,
        )


class JournalError(BundlePushError):
    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.JOURNAL_UNAVAILABLE,
            category=ErrorCategory.JOURNAL,
            exit_code=ExitCode.CLEANUP_ERROR,
            context={"path": path} if path else None,
            **kwargs,
        )


class DeleteBackendError(BundlePushError):
    def __init__(self, message: str, backend: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.DELETE_FAILED,
            category=ErrorCategory.BACKEND,
            exit_code=ExitCode.CLEANUP_ERROR,
            context={"backend": backend} if backend else None,
            **kwargs,
        )


class InternalError(BundlePushError):
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.INTERNAL_ERROR,
            category=ErrorCategory.INTERNAL,
            exit_code=ExitCode.INTERNAL_ERROR,
            **kwargs,
        )


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

__all__ = [
    "ExitCode",
    "ErrorCategory",
    "ErrorCode",
    "BundlePushError",
    "ConfigurationError",
    "FileReadError",
    "BackendError",
    "JournalError",
    "DeleteBackendError",
    "InternalError",
]
