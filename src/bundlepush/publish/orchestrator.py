"""
Concurrent upload of emitted assets to their matching routes.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from ..core.errors import BackendError, BundlePushError, ConfigurationError, FileReadError, JournalError
from ..core.messages import Messages, load_messages
from ..core.types import Asset, PublishReport, RunCounters, RunStatus
from ..storage.config import Route, RouteSet
from ..storage.registry import BackendRegistry
from .journal import JournalStore, PublishJournal
from .matching import matching_routes, published_name, read_asset

logger = logging.getLogger(__name__)


class PublishOrchestrator:
    """
    One instance per run. Uploads race freely; the journal is only written
    once every dispatched upload has settled.
    """

    def __init__(self, registry: BackendRegistry, messages: Optional[Messages] = None):
        self.registry = registry
        self.messages = messages or load_messages("en")

    async def _acquire(self, routes: RouteSet) -> None:
        m = self.messages
        try:
            await self.registry.acquire_all(routes if isinstance(routes, list) else [routes])
        except BundlePushError as e:
            raise ConfigurationError(m("INVALID_CDN_OPTIONS_LOADED", reason=e)) from e

    async def _upload(
        self,
        asset: Asset,
        route: Route,
        file_name: str,
        read: "asyncio.Future[bytes]",
        counters: RunCounters,
        uploaded: List[str],
        local_outputs: Dict[str, Optional[Asset]],
    ) -> None:
        m = self.messages

        try:
            content = await read
        except FileReadError as e:
            counters.failed += 1
            logger.error(m("LOADING_FILE_ERROR", name=file_name, reason=e))
            return

        try:
            await self.registry.get(route).put(content, file_name)
        except BackendError as e:
            counters.failed += 1
            local_outputs[asset.key] = None
            logger.error(m("UPLOADING_ERROR", name=file_name, reason=e))
            return

        counters.succeeded += 1
        uploaded.append(file_name)
        # Any failed route keeps the local file.
        local_outputs.setdefault(asset.key, asset)
        logger.info(m("SINGLE_FILE_UPLOADED", name=file_name))

    async def publish(
        self,
        assets: Mapping[str, Asset],
        routes: RouteSet,
        output_root: Union[str, Path],
        *,
        journal: Optional[JournalStore] = None,
        delete_output: bool = False,
    ) -> PublishReport:
        """
        Raises:
            ConfigurationError when a backend cannot be instantiated; no
            upload has been dispatched in that case.
        """
        m = self.messages
        counters = RunCounters()
        uploaded: List[str] = []
        local_outputs: Dict[str, Optional[Asset]] = {}

        await self._acquire(routes)

        logger.info(m("UPLOAD_START"))

        reads: Dict[str, asyncio.Future] = {}
        uploads = []

        for key, asset in assets.items():
            for route in matching_routes(asset, routes):
                if key not in reads:
                    # One read per asset, shared by every route it goes to.
                    reads[key] = asyncio.ensure_future(read_asset(asset))
                counters.attempted += 1
                uploads.append(
                    self._upload(
                        asset,
                        route,
                        published_name(asset, output_root),
                        reads[key],
                        counters,
                        uploaded,
                        local_outputs,
                    )
                )

        results = await asyncio.gather(*uploads, return_exceptions=True)

        unexpected = [r for r in results if isinstance(r, BaseException)]

        report = PublishReport(
            counters=counters,
            uploaded=list(dict.fromkeys(uploaded)),
            journal_path=journal.path if journal else None,
        )

        if journal is not None and report.uploaded:
            try:
                await journal.write(PublishJournal(routes=routes, files=report.uploaded))
                report.journal_written = True
            except JournalError as e:
                logger.error(m("SAVING_LOG_ERROR", reason=e))

        removable = [asset for asset in local_outputs.values() if asset is not None]
        if delete_output and removable:
            await self._delete_output(removable)

        self._summarize(counters)

        if unexpected:
            raise unexpected[0]

        return report

    async def _delete_output(self, assets) -> None:
        m = self.messages
        for asset in assets:
            if asset.path is None:
                continue
            try:
                await asyncio.to_thread(Path(asset.path).unlink)
            except OSError as e:
                logger.warning(m("DELETE_OUTPUT_ERROR", name=asset.key, reason=e))
        logger.info(m("DELETE_OUTPUT_ENABLED"))

    def _summarize(self, counters: RunCounters) -> None:
        m = self.messages

        if counters.status is RunStatus.EMPTY:
            logger.warning(m("EMPTY_UPLOADING_FILES"))
        elif counters.status is RunStatus.COMPLETE:
            logger.info(m("ALL_FILE_UPLOADED"))

        logger.info(m("FINAL_OUTPUT", **counters.to_dict()))


__all__ = ["PublishOrchestrator"]
