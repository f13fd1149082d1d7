"""
Publish journal: the record of what a run published, consumed by the next
run's cleanup.

State machine::

    ABSENT --write--> WRITTEN --read--> CONSUMED --remove--> DELETED

A journal that is missing, unreadable or malformed raises JournalError and
is left on disk untouched.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.errors import BundlePushError, JournalError
from ..core.messages import Messages, load_messages
from ..storage.config import RouteSet, routes_from_json, routes_to_json

logger = logging.getLogger(__name__)


class JournalState(str, Enum):
    ABSENT = "absent"
    WRITTEN = "written"
    CONSUMED = "consumed"
    DELETED = "deleted"


@dataclass
class PublishJournal:
    routes: RouteSet
    files: List[str] = field(default_factory=list)

    @property
    def multi_route(self) -> bool:
        return isinstance(self.routes, list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "cdn": routes_to_json(self.routes),
            "files": [{"fileName": name} for name in self.files],
        }

    @classmethod
    def from_json(cls, raw: Any) -> "PublishJournal":
        """
        Raises:
            JournalError on a structurally invalid record. An empty file
            list parses; rejecting it is the caller's decision.
        """
        if not isinstance(raw, dict) or "cdn" not in raw:
            raise JournalError("journal must be an object with a 'cdn' entry")

        try:
            routes = routes_from_json(raw["cdn"])
        except (BundlePushError, TypeError, ValueError, AttributeError) as e:
            raise JournalError(f"journal holds an invalid route: {e}") from e

        files_raw = raw.get("files")
        if not isinstance(files_raw, list):
            raise JournalError("journal 'files' must be a list")

        files = []
        for entry in files_raw:
            name = entry.get("fileName") if isinstance(entry, dict) else entry
            if not isinstance(name, str) or not name:
                raise JournalError(f"journal entry without fileName: {entry!r}")
            files.append(name)

        return cls(routes=routes, files=files)


class JournalStore:
    """
    Owns one journal file and its lifecycle within a run.
    """

    def __init__(self, path: Path, messages: Optional[Messages] = None):
        self.path = Path(path)
        self.messages = messages or load_messages("en")
        self.state = JournalState.WRITTEN if self.path.exists() else JournalState.ABSENT

    # ----------------------------
    # Read
    # ----------------------------

    async def read(self) -> PublishJournal:
        """
        Raises:
            JournalError
        """
        m = self.messages

        if not self.path.exists():
            raise JournalError(m("PREVIOUS_LOG_NOT_EXISTS"), path=str(self.path))

        try:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise JournalError(f"{m('INVALID_PREVIOUS_LOG_FILE')}: {e}", path=str(self.path)) from e

        try:
            raw = json.loads(text)
        except ValueError as e:
            raise JournalError(m("INVALID_PREVIOUS_LOG_FILE"), path=str(self.path)) from e

        journal = PublishJournal.from_json(raw)
        self.state = JournalState.CONSUMED
        logger.debug("journal %s consumed: %d files", self.path, len(journal.files))
        return journal

    # ----------------------------
    # Write (atomic)
    # ----------------------------

    def _write_sync(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as tmp_file:
                tmp_file.write(payload)
            os.replace(tmp_path, self.path)
        except Exception:
            os.unlink(tmp_path)
            raise

    async def write(self, journal: PublishJournal) -> None:
        """
        Raises:
            JournalError if the record is empty or cannot be saved.
        """
        if not journal.files:
            raise JournalError("refusing to write a journal without files", path=str(self.path))

        payload = json.dumps(journal.to_json(), ensure_ascii=False, indent=2)
        try:
            await asyncio.to_thread(self._write_sync, payload)
        except OSError as e:
            raise JournalError(
                self.messages("SAVING_LOG_ERROR", reason=e), path=str(self.path)
            ) from e

        self.state = JournalState.WRITTEN
        logger.debug("journal written to %s (%d files)", self.path, len(journal.files))

    # ----------------------------
    # Remove
    # ----------------------------

    async def remove(self) -> None:
        """
        Only a consumed journal may be removed, i.e. after cleanup
        reported a definite count.
        """
        if self.state is not JournalState.CONSUMED:
            raise JournalError(
                f"cannot remove journal in state {self.state.value}", path=str(self.path)
            )
        try:
            await asyncio.to_thread(self.path.unlink)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise JournalError(f"failed to remove journal: {e}", path=str(self.path)) from e
        self.state = JournalState.DELETED


__all__ = ["JournalState", "PublishJournal", "JournalStore"]
