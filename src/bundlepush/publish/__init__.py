"""
Publish and cleanup orchestration.
"""

from .cleanup import DeleteOrchestrator, group_by_backend
from .journal import JournalState, JournalStore, PublishJournal
from .matching import matching_routes, published_name, read_asset
from .orchestrator import PublishOrchestrator
from .publisher import BundlePublisher, collect_assets
from .validator import ConfirmPort, RouteValidator, accept, decline

__all__ = [
    "BundlePublisher",
    "collect_assets",
    "PublishOrchestrator",
    "DeleteOrchestrator",
    "group_by_backend",
    "RouteValidator",
    "ConfirmPort",
    "accept",
    "decline",
    "JournalState",
    "JournalStore",
    "PublishJournal",
    "matching_routes",
    "published_name",
    "read_asset",
]
