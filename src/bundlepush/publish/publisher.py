"""
Per-build entry point.

The build pipeline calls ``handle_emitted`` once with the emitted assets;
the completion callback fires exactly once, whatever the outcome.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..core.errors import (
    BundlePushError,
    ConfigurationError,
    DeleteBackendError,
    InternalError,
    JournalError,
)
from ..core.messages import Messages, load_messages
from ..core.types import Asset, PublishReport
from ..storage.config import PublishOptions
from ..storage.registry import BackendRegistry
from .cleanup import DeleteOrchestrator
from .journal import JournalStore
from .orchestrator import PublishOrchestrator
from .validator import ConfirmPort, RouteValidator, decline

logger = logging.getLogger(__name__)

Callback = Callable[[PublishReport], None]


def collect_assets(output_root: Union[str, Path], exclude=()) -> Dict[str, Asset]:
    """
    Asset mapping for every file below ``output_root``; keys are the
    ``/``-separated relative paths.
    """
    root = Path(output_root)
    excluded = {Path(p).resolve() for p in exclude}
    assets = {}
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.resolve() in excluded:
            continue
        key = path.relative_to(root).as_posix()
        assets[key] = Asset(key=key, path=path)
    return assets


class BundlePublisher:

    def __init__(
        self,
        options: Union[PublishOptions, Mapping[str, Any]],
        *,
        confirm: ConfirmPort = decline,
        messages: Optional[Messages] = None,
        registry_factory: Callable[[], BackendRegistry] = BackendRegistry,
    ):
        if not isinstance(options, PublishOptions):
            options = PublishOptions.from_mapping(options)
        self.options = options
        self.messages = messages or load_messages(options.lang)
        self.validator = RouteValidator(self.messages, confirm or decline)
        self.registry_factory = registry_factory or BackendRegistry
        self.cleaner = DeleteOrchestrator(self.registry_factory, self.messages)

    async def _run(
        self,
        report: PublishReport,
        assets: Mapping[str, Any],
        output_root: Path,
    ) -> PublishReport:
        m = self.messages
        options = self.options

        routes = await self.validator.validate_all(options.cdn)

        store = JournalStore(options.journal_path(output_root), m)
        report.journal_path = store.path

        if options.delete_previous:
            logger.info(m("DELETE_PREVIOUS_ENABLED"))
            try:
                report.deleted_previous = await self.cleaner.delete_previous(store)
            except (JournalError, DeleteBackendError) as e:
                logger.warning(m("SKIP_DELETE_PREVIOUS_DUE_TO", reason=e))

        normalized = {key: Asset.from_entry(key, entry) for key, entry in assets.items()}

        async with self.registry_factory() as registry:
            published = await PublishOrchestrator(registry, m).publish(
                normalized,
                routes,
                output_root,
                journal=store,
                delete_output=options.delete_output,
            )

        report.counters = published.counters
        report.uploaded = published.uploaded
        report.journal_written = published.journal_written
        return report

    async def handle_emitted(
        self,
        assets: Mapping[str, Any],
        output_root: Union[str, Path],
        callback: Optional[Callback] = None,
    ) -> PublishReport:
        report = PublishReport()

        try:
            await self._run(report, assets, Path(output_root))
        except ConfigurationError as e:
            logger.error(e.message)
            report.error = e
        except BundlePushError as e:
            logger.error(e.format())
            report.error = e
        except Exception as e:
            logger.exception("publish run failed")
            report.error = InternalError(f"{type(e).__name__}: {e}")

        if callback is not None:
            callback(report)
        return report

    def run(
        self,
        assets: Mapping[str, Any],
        output_root: Union[str, Path],
        callback: Optional[Callback] = None,
    ) -> PublishReport:
        """Blocking wrapper for synchronous build pipelines."""
        return asyncio.run(self.handle_emitted(assets, output_root, callback))


__all__ = ["BundlePublisher", "collect_assets", "Callback"]
