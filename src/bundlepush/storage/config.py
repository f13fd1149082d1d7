"""
Route and run configuration.

Design goals:
- Strong typing
- Immutable routes once validated
- Lossless round trip through the publish journal
- Deterministic pattern normalization (duplicate detection relies on it)
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from ..core.errors import ConfigurationError, ErrorCode

# ================================
# Constants
# ================================

DEFAULT_JOURNAL_NAME = "wp.previous.json"
DEFAULT_PATTERN = re.compile(r"\.(js|css)$")
DEFAULT_CONFIG_NAMES = ("bundlepush.yaml", "bundlepush.yml", "bundlepush.json")

_FLAG_LETTERS = (
    ("i", re.IGNORECASE),
    ("m", re.MULTILINE),
    ("s", re.DOTALL),
    ("x", re.VERBOSE),
)
_WRAPPED_PATTERN = re.compile(r"/(.*)/([imsx]*)", re.DOTALL)


# ================================
# Backend Enum
# ================================


class BackendType(str, Enum):
    QINIU = "qiniu"
    TXCOS = "txcos"
    FTP = "ftp"
    S3 = "s3"

    @property
    def is_directory_oriented(self) -> bool:
        return self is BackendType.FTP

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


# Backends that sign requests with a key/secret pair and address a bucket.
KEYED_BACKENDS = frozenset({BackendType.QINIU, BackendType.TXCOS, BackendType.S3})

DISPLAY_NAMES = {
    BackendType.QINIU: "Qiniu",
    BackendType.TXCOS: "Tencent COS",
    BackendType.FTP: "FTP",
    BackendType.S3: "S3",
}


# ================================
# Pattern helpers
# ================================


def compile_pattern(value: Union[str, "re.Pattern[str]"]) -> "re.Pattern[str]":
    """
    Accepts a compiled pattern, a bare regex source, or the slash-wrapped
    ``/source/flags`` form written to the journal.

    Raises:
        ValueError / re.error on anything else.
    """
    if isinstance(value, re.Pattern):
        return value

    if not isinstance(value, str) or not value:
        raise ValueError(f"not a pattern: {value!r}")

    wrapped = _WRAPPED_PATTERN.fullmatch(value)
    if wrapped is None:
        return re.compile(value)

    source, letters = wrapped.groups()
    flags = 0
    for letter, flag in _FLAG_LETTERS:
        if letter in letters:
            flags |= flag
    return re.compile(source, flags)


def pattern_key(pattern: "re.Pattern[str]") -> str:
    """Normalized ``/source/flags`` string of a compiled pattern."""
    letters = "".join(letter for letter, flag in _FLAG_LETTERS if pattern.flags & flag)
    return f"/{pattern.pattern}/{letters}"


# ================================
# Domain Model
# ================================

_KNOWN_KEYS = {
    "type",
    "accessKey",
    "secretKey",
    "bucket",
    "destPath",
    "host",
    "port",
    "user",
    "password",
    "test",
}


@dataclass(frozen=True)
class Route:
    """
    One validated publish destination.

    Backend-specific extras (``contentType``, ``acl``, ``region``,
    ``endpointUrl`` ...) are kept verbatim in ``options``.
    """

    backend: BackendType
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    bucket: Optional[str] = None
    dest_path: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    pattern: Optional["re.Pattern[str]"] = None
    options: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def pattern_key(self) -> Optional[str]:
        return pattern_key(self.pattern) if self.pattern is not None else None

    @property
    def connection_key(self) -> tuple:
        """
        Identity used to share one client between routes. Routes of the same
        backend type pointing at the same account and target share a client.
        """
        return (
            self.backend.value,
            self.access_key,
            self.host,
            self.port,
            self.user,
            self.bucket,
            self.dest_path,
        )

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self.backend]

    def matches(self, candidate: str, default: Optional["re.Pattern[str]"] = None) -> bool:
        pattern = self.pattern or default
        if pattern is None:
            return False
        return pattern.search(candidate) is not None

    # ----------------------------
    # (De)serialization
    # ----------------------------

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Route":
        """
        Build a Route from a raw route mapping.

        Raises:
            ConfigurationError for a non-mapping record, an unknown type, an
            uncompilable pattern or a non-numeric port.
        """
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"Invalid route record: {raw!r}")

        try:
            backend = BackendType(raw.get("type"))
        except ValueError as e:
            raise ConfigurationError(
                f"Unsupported backend type: {raw.get('type')}",
                code=ErrorCode.UNSUPPORTED_BACKEND,
            ) from e

        pattern = None
        if raw.get("test") is not None:
            try:
                pattern = compile_pattern(raw["test"])
            except (ValueError, re.error) as e:
                raise ConfigurationError(
                    f"Invalid match pattern: {raw['test']!r}",
                    code=ErrorCode.INVALID_PATTERN,
                ) from e

        port = raw.get("port")
        if port is not None:
            try:
                port = int(port)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid port: {port!r}") from e

        return cls(
            backend=backend,
            access_key=raw.get("accessKey"),
            secret_key=raw.get("secretKey"),
            bucket=raw.get("bucket"),
            dest_path=raw.get("destPath"),
            host=raw.get("host"),
            port=port,
            user=raw.get("user"),
            password=raw.get("password"),
            pattern=pattern,
            options={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.backend.value}

        optional = {
            "accessKey": self.access_key,
            "secretKey": self.secret_key,
            "bucket": self.bucket,
            "destPath": self.dest_path,
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "test": self.pattern_key,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        data.update(self.options)
        return data


RouteSet = Union[Route, List[Route]]


def routes_to_json(routes: RouteSet) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    if isinstance(routes, list):
        return [route.to_dict() for route in routes]
    return routes.to_dict()


def routes_from_json(raw: Any) -> RouteSet:
    if isinstance(raw, list):
        return [Route.from_dict(item) for item in raw]
    if isinstance(raw, Mapping):
        return Route.from_dict(raw)
    raise ConfigurationError(f"Invalid route record: {raw!r}")


# ================================
# Run options
# ================================


@dataclass(frozen=True)
class PublishOptions:
    """
    Options recognized for one publish run. ``cdn`` stays raw until the
    RouteValidator turns it into Routes.
    """

    cdn: Any = None
    delete_previous: bool = False
    delete_output: bool = False
    log_name: Optional[str] = None
    log_path: Optional[str] = None
    lang: Optional[str] = None

    @property
    def multi_route(self) -> bool:
        return isinstance(self.cdn, (list, tuple))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "PublishOptions":
        def pick(*keys, default=None):
            for key in keys:
                if key in raw:
                    return raw[key]
            return default

        cdn = raw.get("cdn")
        if isinstance(cdn, tuple):
            cdn = list(cdn)

        return cls(
            cdn=cdn,
            delete_previous=bool(pick("deletePrevious", "delete_previous", default=False)),
            delete_output=bool(pick("deleteOutput", "delete_output", default=False)),
            log_name=pick("logName", "log_name"),
            log_path=pick("logPath", "log_path"),
            lang=pick("lang"),
        )

    def journal_path(self, output_root: Path) -> Path:
        directory = Path(self.log_path).expanduser() if self.log_path else Path(output_root)
        return directory / (self.log_name or DEFAULT_JOURNAL_NAME)

    def replace(self, **changes) -> "PublishOptions":
        return replace(self, **changes)


# ================================
# Config file
# ================================


def find_config(start: Optional[Path] = None) -> Optional[Path]:
    directory = start or Path.cwd()
    for name in DEFAULT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.exists():
            return candidate
    return None


def load_options(path: Path) -> PublishOptions:
    """
    Load PublishOptions from a YAML or JSON file.

    Raises:
        ConfigurationError
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file: {path}") from e

    try:
        raw = json.loads(text) if Path(path).suffix == ".json" else yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Malformed configuration file: {path}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file must hold a mapping: {path}")

    return PublishOptions.from_mapping(raw)


__all__ = [
    "BackendType",
    "KEYED_BACKENDS",
    "DEFAULT_JOURNAL_NAME",
    "DEFAULT_PATTERN",
    "Route",
    "RouteSet",
    "PublishOptions",
    "compile_pattern",
    "pattern_key",
    "routes_to_json",
    "routes_from_json",
    "find_config",
    "load_options",
]
