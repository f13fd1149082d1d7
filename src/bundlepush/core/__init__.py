"""Core primitives for BundlePush."""

from .types import Asset, PublishReport, RunCounters, RunStatus, UploadAck
from .errors import (
    ExitCode,
    ErrorCategory,
    ErrorCode,
    BundlePushError,
    ConfigurationError,
    FileReadError,
    BackendError,
    JournalError,
    DeleteBackendError,
    InternalError,
)
from .messages import Messages, load_messages

__all__ = [
    "Asset",
    "PublishReport",
    "RunCounters",
    "RunStatus",
    "UploadAck",
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
    "Messages",
    "load_messages",
]
