"""
BundlePush - publish build output to CDN/object storage and clean up the
previous release.
"""

__version__ = "0.1.0"

# Lazy imports - don't load backend SDKs at module level
def __getattr__(name):
    if name == "BundlePublisher":
        from .publish.publisher import BundlePublisher
        return BundlePublisher
    elif name == "PublishOptions":
        from .storage.config import PublishOptions
        return PublishOptions
    elif name == "Asset":
        from .core.types import Asset
        return Asset
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ["__version__"]
