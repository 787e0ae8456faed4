"""URL helpers for endpoint and request addresses."""
from typing import Mapping, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from .errors import ConfigError

DEFAULT_PORTS = {"http": 80, "https": 443}


def make_host_url(host: str, protocol: str = "http", path: str = "", default_port: Optional[int] = None) -> str:
    """
    Build the base URL for one configured host.

    A host may be a bare ``name[:port]`` or a full URL. Missing scheme,
    port and path are filled in from the arguments.

    Raises:
        ConfigError: If the host or protocol cannot form a URL
    """
    if not host:
        raise ConfigError("empty host")

    protocol = protocol or "http"
    if protocol not in DEFAULT_PORTS:
        raise ConfigError(f"unsupported protocol: {protocol}")

    raw = host if "://" in host else f"{protocol}://{host}"
    parts = urlsplit(raw)
    if parts.scheme not in DEFAULT_PORTS or not parts.hostname:
        raise ConfigError(f"invalid host: {host}")

    try:
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"invalid port in host {host}: {e}") from e
    if port is None:
        port = default_port or DEFAULT_PORTS[parts.scheme]

    netloc = parts.hostname
    if ":" in netloc:
        netloc = f"[{netloc}]"
    netloc = f"{netloc}:{port}"
    if parts.username:
        auth = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        netloc = f"{auth}@{netloc}"

    # A path embedded in the host wins over the configured one
    url_path = parts.path
    if path and url_path in ("", "/"):
        url_path = "/" + path.strip("/")
    return urlunsplit((parts.scheme, netloc, url_path, parts.query, ""))


def make_url(base: str, path: str = "", params: Optional[Mapping[str, str]] = None) -> str:
    """Append a path and query parameters to a base URL."""
    url = base
    if path:
        url = url.rstrip("/") + "/" + path.lstrip("/")
    if params:
        sep = "&" if "?" in url else "?"
        url = url + sep + urlencode(sorted(params.items()))
    return url


def parse_proxy_url(raw: Optional[str]) -> Optional[str]:
    """
    Validate a proxy URL.

    Returns:
        The URL unchanged, or None when no proxy is configured
    """
    if not raw:
        return None
    parts = urlsplit(raw)
    if not parts.scheme or not parts.hostname:
        raise ConfigError(f"invalid proxy url: {raw}")
    return raw
