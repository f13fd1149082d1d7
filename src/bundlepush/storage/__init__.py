"""
Remote storage backends for BundlePush.

Variant clients (qiniu, cos, ftp, s3) are imported on demand by the
BackendRegistry so only the SDKs a run needs get loaded.
"""

from .backend import BackendClient, parent_directory
from .config import (
    BackendType,
    DEFAULT_JOURNAL_NAME,
    DEFAULT_PATTERN,
    PublishOptions,
    Route,
    compile_pattern,
    find_config,
    load_options,
    pattern_key,
)
from .registry import BackendRegistry

__all__ = [
    # Backends
    "BackendClient",
    "BackendRegistry",
    "parent_directory",

    # Config
    "BackendType",
    "Route",
    "PublishOptions",
    "DEFAULT_JOURNAL_NAME",
    "DEFAULT_PATTERN",
    "compile_pattern",
    "pattern_key",
    "find_config",
    "load_options",
]
