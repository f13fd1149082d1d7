"""
S3 and S3-compatible storage (MinIO, R2, Spaces ...) through boto3.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from typing import Any, List, Optional, Sequence

import boto3

from ..core.errors import BackendError
from ..core.types import UploadAck
from .backend import BackendClient
from .config import Route

logger = logging.getLogger(__name__)

BATCH_LIMIT = 1000
DEFAULT_ACL = "public-read"
DEFAULT_CONTENT_TYPE = "text/plain"


class S3Backend(BackendClient):

    def __init__(self, route: Route, *, client: Optional[Any] = None):
        super().__init__(route)
        self._require(
            ("accessKey", route.access_key),
            ("secretKey", route.secret_key),
            ("bucket", route.bucket),
        )
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=route.access_key,
                aws_secret_access_key=route.secret_key,
                region_name=route.options.get("region") or route.host,
            )
            client = session.client("s3", endpoint_url=route.options.get("endpointUrl"))
        self._client = client
        self.prefix = (route.options.get("prefix") or "").strip("/")

    def _key(self, name: str) -> str:
        name = name.lstrip("/")
        return f"{self.prefix}/{name}" if self.prefix else name

    def _content_type(self, name: str) -> str:
        configured = self.route.options.get("contentType")
        if configured:
            return configured
        guessed, _ = mimetypes.guess_type(name)
        return guessed or DEFAULT_CONTENT_TYPE

    async def put(self, content: bytes, name: str) -> UploadAck:
        key = self._key(name)

        async with self._operation("put", name):
            response = await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.route.bucket,
                Key=key,
                Body=content,
                ContentLength=len(content),
                ContentType=self._content_type(name),
                ACL=self.route.options.get("acl", DEFAULT_ACL),
            )

        return UploadAck(
            name=name,
            backend=self.name,
            location=f"s3://{self.route.bucket}/{key}",
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
                        "Objects": [{"Key": self._key(name)} for name in chunk],
                        "Quiet": True,
                    },
                )

            errors = response.get("Errors") or []
            if errors:
                first = errors[0]
                raise BackendError(
                    f"S3 refused to delete {len(errors)} keys "
                    f"(first: {first.get('Key')}: {first.get('Code')})",
                    backend=self.name,
                )
            deleted += len(chunk)
        return deleted

    async def list(self, prefix: str = "") -> List[str]:
        async with self._operation("list", prefix):
            response = await asyncio.to_thread(
                self._client.list_objects_v2,
                Bucket=self.route.bucket,
                Prefix=self._key(prefix) if prefix else self.prefix,
            )
        return [item["Key"] for item in response.get("Contents", [])]


__all__ = ["S3Backend"]
