"""
Tencent Cloud COS through the official SDK.

The SDK is blocking; every call is pushed to a worker thread so uploads
still overlap on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from qcloud_cos import CosConfig, CosS3Client

from ..core.errors import BackendError
from ..core.types import UploadAck
from .backend import BackendClient
from .config import Route

logger = logging.getLogger(__name__)

BATCH_LIMIT = 1000


class CosBackend(BackendClient):

    def __init__(self, route: Route, *, client: Optional[CosS3Client] = None):
        super().__init__(route)
        self.region = route.host or route.options.get("region")
        self._require(
            ("accessKey", route.access_key),
            ("secretKey", route.secret_key),
            ("bucket", route.bucket),
            ("host (region)", self.region),
        )
        self._client = client or CosS3Client(
            CosConfig(
                Region=self.region,
                SecretId=route.access_key,
                SecretKey=route.secret_key,
                Scheme=route.options.get("scheme", "https"),
            )
        )

    async def put(self, content: bytes, name: str) -> UploadAck:
        extra = {}
        if self.route.options.get("contentType"):
            extra["ContentType"] = self.route.options["contentType"]

        async with self._operation("put", name):
            response = await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.route.bucket,
                Key=name,
                Body=content,
                **extra,
            )

        return UploadAck(
            name=name,
            backend=self.name,
            location=f"cos://{self.route.bucket}/{name}",
            response=response,
        )

    async def delete_many(self, names: Sequence[str]) -> int:
        deleted = 0
        for start in range(0, len(names), BATCH_LIMIT):
            chunk = names[start:start + BATCH_LIMIT]
            async with self._operation("delete"):
                response = await asyncio.to_thread(
                    self._client.delete_objects,
                    Bucket=self.route.bucket,
                    Delete={
                        "Object": [{"Key": name} for name in chunk],
                        "Quiet": "false",
                    },
                )
            errors = response.get("Error") or []
            if errors:
                first = errors[0]
                raise BackendError(
                    f"COS refused to delete {len(errors)} keys "
                    f"(first: {first.get('Key')}: {first.get('Code')})",
                    backend=self.name,
                )
            deleted += len(response.get("Deleted") or [])
        return deleted

    async def list(self, prefix: str = "") -> List[str]:
        async with self._operation("list", prefix):
            response = await asyncio.to_thread(
                self._client.list_objects,
                Bucket=self.route.bucket,
                Prefix=prefix,
                MaxKeys=BATCH_LIMIT,
            )
        return [item["Key"] for item in response.get("Contents", [])]


__all__ = ["CosBackend"]
