"""
Client settings.

ConnectionSettings describe the endpoint and are shared by clones.
RoutingSettings belong to one client and are never copied into a clone.
"""
import ssl
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

FORMAT_JSON = "json"
FORMAT_JSON_LINES = "json_lines"
VALID_FORMATS = (FORMAT_JSON, FORMAT_JSON_LINES)


def _frozen(mapping: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ConnectionSettings:
    """Immutable endpoint settings."""

    url: str
    proxy_url: Optional[str] = None
    tls: Optional[ssl.SSLContext] = None
    username: str = ""
    password: str = ""
    timeout: Optional[float] = 90.0
    compression_level: int = 0
    headers: Mapping[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None
    format: str = FORMAT_JSON
    batch_publish: bool = False

    def __post_init__(self):
        object.__setattr__(self, "headers", _frozen(self.headers))


@dataclass(frozen=True)
class RoutingSettings:
    """Per-client request parameters."""

    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "params", _frozen(self.params))
