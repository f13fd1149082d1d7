"""
Static validation of route configuration, before any backend I/O.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from ..core.errors import ConfigurationError, ErrorCode
from ..core.messages import Messages, load_messages
from ..storage.config import KEYED_BACKENDS, BackendType, Route

logger = logging.getLogger(__name__)

ConfirmPort = Callable[[str], Union[bool, Awaitable[bool]]]


def decline(question: str) -> bool:
    """Non-interactive confirmation: never accept a duplicate."""
    logger.debug("declining without prompt: %s", question)
    return False


def accept(question: str) -> bool:
    return True


class RouteValidator:
    """
    Turns raw route mappings into immutable Routes.

    Duplicate match patterns across routes are only allowed with explicit
    confirmation through the injected ``confirm`` port; one refusal fails
    the whole route set.
    """

    def __init__(self, messages: Optional[Messages] = None, confirm: ConfirmPort = decline):
        self.messages = messages or load_messages("en")
        self.confirm = confirm

    def _where(self, index: int) -> str:
        return f" CDN index:{index}" if index != -1 else ""

    # ----------------------------
    # Single route
    # ----------------------------

    def validate(self, route: Any, index: int = -1) -> Route:
        """
        Raises:
            ConfigurationError
        """
        m = self.messages

        if route is None:
            raise ConfigurationError(m("EMPTY_CDN_CONFIG"), code=ErrorCode.EMPTY_ROUTES, index=index)

        if isinstance(route, Route):
            route = route.to_dict()

        if not isinstance(route, Mapping):
            raise ConfigurationError(m("EMPTY_CDN_CONFIG"), code=ErrorCode.EMPTY_ROUTES, index=index)

        backend_type = route.get("type")
        if backend_type not in BackendType.values():
            raise ConfigurationError(
                f"{m('CDN_TYPE_NOT_SUPPORTED')}: {backend_type}{self._where(index)}",
                code=ErrorCode.UNSUPPORTED_BACKEND,
                index=index,
            )

        backend = BackendType(backend_type)
        display = Route(backend=backend).display_name

        if backend in KEYED_BACKENDS:
            if not route.get("accessKey") or not route.get("secretKey"):
                raise ConfigurationError(
                    m("EMPTY_ACCESS_OR_SECRET", backend=display) + self._where(index),
                    code=ErrorCode.MISSING_CREDENTIALS,
                    index=index,
                )
            if not route.get("bucket"):
                raise ConfigurationError(
                    m("EMPTY_BUCKET", backend=display) + self._where(index),
                    code=ErrorCode.MISSING_CREDENTIALS,
                    index=index,
                )

        if backend is BackendType.FTP:
            if route.get("destPath") is None:
                raise ConfigurationError(
                    m("INVALID_FTP_DEST_PATH") + self._where(index),
                    code=ErrorCode.INVALID_CONFIGURATION,
                    index=index,
                )
            if not route.get("host"):
                raise ConfigurationError(
                    m("INVALID_FTP_HOST") + self._where(index),
                    code=ErrorCode.INVALID_CONFIGURATION,
                    index=index,
                )

        try:
            return Route.from_dict(route)
        except ConfigurationError as e:
            reason = m("INVALID_PATTERN") if e.error_code is ErrorCode.INVALID_PATTERN else e.message
            raise ConfigurationError(
                f"{reason}{self._where(index)}",
                code=e.error_code,
                index=index,
            ) from e

    # ----------------------------
    # Route set
    # ----------------------------

    async def _ask(self, question: str) -> bool:
        answer = self.confirm(question)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def validate_all(self, routes: Any) -> Union[Route, List[Route]]:
        """
        A single route mapping validates to a Route; a list validates to a
        list of Routes in configuration order.

        Every route settles before the result resolves, so all prompts are
        answered (or skipped after a refusal) before an error surfaces.

        Raises:
            ConfigurationError
        """
        if not isinstance(routes, (list, tuple)):
            return self.validate(routes)

        m = self.messages

        if len(routes) == 0:
            raise ConfigurationError(m("EMPTY_CDN_CONFIG"), code=ErrorCode.EMPTY_ROUTES)

        seen: Dict[str, int] = {}
        prompt_lock = asyncio.Lock()
        terminal = False

        async def check(index: int, raw: Any) -> Route:
            nonlocal terminal

            route = self.validate(raw, index)

            if route.pattern is None:
                raise ConfigurationError(
                    f"{m('INVALID_PATTERN')}, Index: {index}",
                    code=ErrorCode.INVALID_PATTERN,
                    index=index,
                )

            key = route.pattern_key
            if key not in seen:
                seen[key] = index
                return route

            async with prompt_lock:
                if terminal:
                    raise ConfigurationError(
                        m("DUPLICATE_PATTERN_FOUND"), code=ErrorCode.DUPLICATE_PATTERN, index=index
                    )
                if not await self._ask(m("DUPLICATE_PATTERN_QUESTION", pattern=key)):
                    terminal = True
                    raise ConfigurationError(
                        m("DUPLICATE_PATTERN_FOUND"), code=ErrorCode.DUPLICATE_PATTERN, index=index
                    )

            logger.debug("duplicate pattern %s accepted for route %d", key, index)
            return route

        results = await asyncio.gather(
            *(check(index, raw) for index, raw in enumerate(routes)),
            return_exceptions=True,
        )

        if terminal:
            raise ConfigurationError(m("DUPLICATE_PATTERN_FOUND"), code=ErrorCode.DUPLICATE_PATTERN)

        for result in results:
            if isinstance(result, BaseException):
                raise result

        return list(results)


__all__ = ["RouteValidator", "ConfirmPort", "accept", "decline"]
