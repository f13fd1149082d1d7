from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union


# -----------------------------
# Enums
# -----------------------------
class RunStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"
    EMPTY = "empty"


# -----------------------------
# Core Data Types
# -----------------------------
@dataclass(frozen=True)
class Asset:
    """
    One emitted build output considered for publishing.

    Either ``content`` is held inline by the build pipeline, or the bytes
    are read from ``path`` when the upload is dispatched. ``name`` is the
    logical published name and, when set, is used verbatim.
    """
    key: str
    path: Optional[Path] = None
    content: Optional[Union[bytes, str]] = None
    name: Optional[str] = None

    @classmethod
    def from_entry(cls, key: str, entry: Union["Asset", Mapping[str, Any], str, Path]) -> "Asset":
        """
        Accepts the shapes a build pipeline hands over: an Asset, a bare
        path, or a mapping using either snake_case or webpack-style keys
        (``existsAt``, ``_value``, ``_name``).
        """
        if isinstance(entry, Asset):
            return entry

        if isinstance(entry, (str, Path)):
            return cls(key=key, path=Path(entry))

        path = entry.get("path", entry.get("existsAt"))
        return cls(
            key=key,
            path=Path(path) if path else None,
            content=entry.get("content", entry.get("_value")),
            name=entry.get("name", entry.get("_name")),
        )


@dataclass(frozen=True)
class UploadAck:
    name: str
    backend: str
    location: str
    response: Any = None


@dataclass
class RunCounters:
    """Per-invocation upload counters. Never shared between runs."""
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0

    @property
    def status(self) -> RunStatus:
        if self.attempted == 0:
            return RunStatus.EMPTY
        if self.failed == 0:
            return RunStatus.COMPLETE
        if self.succeeded == 0:
            return RunStatus.FAILED
        return RunStatus.PARTIAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "status": self.status.value,
        }


@dataclass
class PublishReport:
    """Outcome of one run, handed to the completion callback."""
    counters: RunCounters = field(default_factory=RunCounters)
    uploaded: List[str] = field(default_factory=list)
    deleted_previous: Optional[int] = None
    journal_path: Optional[Path] = None
    journal_written: bool = False
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.counters.failed == 0
