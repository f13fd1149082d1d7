"""
Deletion of the files a previous run published, driven by its journal.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..core.errors import BundlePushError, DeleteBackendError, JournalError
from ..core.messages import Messages, load_messages
from ..storage.config import Route
from ..storage.registry import BackendRegistry
from .journal import JournalStore, PublishJournal

logger = logging.getLogger(__name__)


def group_by_backend(journal: PublishJournal) -> List[Tuple[Route, List[str]]]:
    """
    Multi-route journals: files matching each route's pattern, grouped per
    backend. Routes without a pattern contribute nothing; a file matched
    by two routes of the same backend is deleted once.
    """
    groups: Dict[tuple, Tuple[Route, Dict[str, None]]] = {}

    for route in journal.routes:
        if route.pattern is None:
            continue

        matched = [name for name in journal.files if route.matches(name)]
        if not matched:
            continue

        _, names = groups.setdefault(route.connection_key, (route, {}))
        for name in matched:
            names[name] = None

    return [(route, list(names)) for route, names in groups.values()]


class DeleteOrchestrator:
    """
    Re-creates the backends recorded in a journal (never the current run's
    configuration) and deletes what the journal lists.
    """

    def __init__(
        self,
        registry_factory: Callable[[], BackendRegistry] = BackendRegistry,
        messages: Optional[Messages] = None,
    ):
        self.registry_factory = registry_factory
        self.messages = messages or load_messages("en")

    async def delete(self, journal: PublishJournal) -> int:
        """
        Returns:
            Total number of deleted files.

        Raises:
            JournalError for an empty file list.
            DeleteBackendError when any backend fails.
        """
        if not journal.files:
            raise JournalError(self.messages("EMPTY_PREVIOUS_LOG_FILE"))

        if journal.multi_route:
            groups = group_by_backend(journal)
        else:
            groups = [(journal.routes, list(dict.fromkeys(journal.files)))]

        if not groups:
            logger.info("no journal file matches a recorded route pattern")
            return 0

        async with self.registry_factory() as registry:
            try:
                clients = [await registry.acquire(route) for route, _ in groups]
            except BundlePushError as e:
                raise DeleteBackendError(f"cannot reach previous backend: {e}") from e

            results = await asyncio.gather(
                *(client.delete_many(names) for client, (_, names) in zip(clients, groups)),
                return_exceptions=True,
            )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            for failure in failures:
                logger.debug("delete failed: %s", failure)
            first = failures[0]
            raise DeleteBackendError(
                f"{len(failures)} of {len(groups)} delete batches failed: {first}",
                backend=getattr(first, "context", {}).get("backend"),
            ) from first

        total = sum(results)
        logger.debug("deleted %d previous files across %d backends", total, len(groups))
        return total

    async def delete_previous(self, store: JournalStore) -> int:
        """
        Full cleanup step: read the journal, delete, then remove the journal.
        The journal stays on disk unless deletion reported a definite count.

        Raises:
            JournalError, DeleteBackendError
        """
        journal = await store.read()
        deleted = await self.delete(journal)
        await store.remove()
        logger.info(self.messages("DELETED_NUM_PREVIOUS_FILES", count=deleted))
        return deleted


__all__ = ["DeleteOrchestrator", "group_by_backend"]
