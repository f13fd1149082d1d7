"""
Qiniu Kodo object storage over its signed HTTP API.

Uploads use the ``putb64`` endpoint with an ``UpToken`` derived from an
HMAC-SHA1 signed put policy; deletes use the ``/batch`` endpoint with a
``QBox`` access token.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

import httpx

from ..core.errors import BackendError
from ..core.types import UploadAck
from .backend import BackendClient
from .config import Route

logger = logging.getLogger(__name__)

RS_HOST = "rs.qiniu.com"
RSF_HOST = "rsf.qbox.me"
TOKEN_TTL = 3600
LIST_LIMIT = 1000
BATCH_LIMIT = 1000
# Batch result code for a key that no longer exists.
NOT_FOUND = 612


def urlsafe_b64(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii")


def upload_host(region: Optional[str]) -> str:
    if not region or region == "z0":
        return "upload.qiniup.com"
    return f"upload-{region}.qiniup.com"


class QiniuBackend(BackendClient):

    def __init__(
        self,
        route: Route,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock=time.time,
    ):
        super().__init__(route)
        self._require(
            ("accessKey", route.access_key),
            ("secretKey", route.secret_key),
            ("bucket", route.bucket),
        )
        self._clock = clock
        self._http = httpx.AsyncClient(
            transport=transport,
            timeout=route.options.get("timeout", 30.0),
        )

    # --------------------------------------------------------
    # Signing
    # --------------------------------------------------------

    def _sign(self, payload: str) -> str:
        digest = hmac.new(
            self.route.secret_key.encode("utf-8"),
            payload.encode("utf-8"),
            hashlib.sha1,
        ).digest()
        return urlsafe_b64(digest)

    def upload_token(self, key: str) -> str:
        policy: Dict[str, Any] = {
            "scope": f"{self.route.bucket}:{key}",
            "deadline": int(self._clock()) + TOKEN_TTL,
        }
        if self.route.options.get("insertOnly"):
            policy["insertOnly"] = 1
        encoded = urlsafe_b64(json.dumps(policy, separators=(",", ":")))
        return f"{self.route.access_key}:{self._sign(encoded)}:{encoded}"

    def access_token(self, path_and_query: str, body: str = "") -> str:
        signed = self._sign(path_and_query + "\n" + body)
        return f"{self.route.access_key}:{signed}"

    # --------------------------------------------------------
    # Helpers
    # --------------------------------------------------------

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError as e:
            raise BackendError(
                f"Unreadable Qiniu response ({response.status_code})",
                backend="qiniu",
            ) from e

        if isinstance(body, dict) and "error" in body:
            raise BackendError(f"Qiniu error: {body['error']}", backend="qiniu")

        if response.status_code >= 400:
            raise BackendError(f"Qiniu HTTP {response.status_code}", backend="qiniu")

        return body

    # --------------------------------------------------------
    # Operations
    # --------------------------------------------------------

    async def put(self, content: bytes, name: str) -> UploadAck:
        if not content:
            raise BackendError("Refusing to upload empty content", backend=self.name, name=name)

        url = f"https://{upload_host(self.route.host)}/putb64/{len(content)}/key/{urlsafe_b64(name)}"

        async with self._operation("put", name):
            response = await self._http.post(
                url,
                content=base64.b64encode(content),
                headers={
                    "Content-Type": "application/octet-stream",
                    "Authorization": f"UpToken {self.upload_token(name)}",
                },
            )
            body = self._decode(response)

        return UploadAck(
            name=name,
            backend=self.name,
            location=f"{self.route.bucket}:{name}",
            response=body,
        )

    async def delete_many(self, names: Sequence[str]) -> int:
        deleted = 0
        for start in range(0, len(names), BATCH_LIMIT):
            deleted += await self._delete_batch(names[start:start + BATCH_LIMIT])
        return deleted

    async def _delete_batch(self, names: Sequence[str]) -> int:
        query = "&".join(
            f"op=/delete/{urlsafe_b64(f'{self.route.bucket}:{name}')}" for name in names
        )
        path = f"/batch?{query}"

        async with self._operation("delete"):
            response = await self._http.post(
                f"https://{RS_HOST}{path}",
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": f"QBox {self.access_token(path)}",
                },
            )
            body = self._decode(response)

        if not isinstance(body, list):
            raise BackendError("Unexpected Qiniu batch response", backend=self.name)

        refused = [result for result in body if result.get("code") not in (200, NOT_FOUND)]
        if refused:
            raise BackendError(
                f"Qiniu refused to delete {len(refused)} keys (first code: {refused[0].get('code')})",
                backend=self.name,
            )

        deleted = sum(1 for result in body if result.get("code") == 200)
        logger.debug("qiniu batch delete: %d/%d", deleted, len(names))
        return deleted

    async def list(self, prefix: str = "") -> List[str]:
        query = urlencode({"bucket": self.route.bucket, "prefix": prefix, "limit": LIST_LIMIT})
        path = f"/list?{query}"

        async with self._operation("list", prefix):
            response = await self._http.get(
                f"https://{RSF_HOST}{path}",
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": f"QBox {self.access_token(path)}",
                },
            )
            body = self._decode(response)

        return [item["key"] for item in body.get("items", [])]

    async def _close(self) -> None:
        await self._http.aclose()


__all__ = ["QiniuBackend", "upload_host", "urlsafe_b64"]
