"""
Single logical HTTP session to one endpoint.

The connected flag is a readiness marker, not a live socket check. It is
armed by connect() and dropped on any transport error or status >= 300.
Reconnecting is left to the caller.
"""
import io
import ssl
from typing import Any, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter
import structlog

from .encoder import make_encoder
from .errors import EncodeError, HTTPStatusError, TransportError
from .observer import NullObserver, Observer
from .settings import ConnectionSettings
from .urls import make_url

logger = structlog.get_logger()


class TLSAdapter(HTTPAdapter):
    """HTTPAdapter that hands a prepared SSLContext to urllib3."""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs):
        self.ssl_context = ssl_context
        super().__init__(**kwargs)

    def _pool_kwargs(self, kwargs):
        kwargs["ssl_context"] = self.ssl_context
        # urllib3 matches hostnames itself unless told not to
        if not self.ssl_context.check_hostname:
            kwargs["assert_hostname"] = False
        return kwargs

    def init_poolmanager(self, *args, **kwargs):
        return super().init_poolmanager(*args, **self._pool_kwargs(kwargs))

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        return super().proxy_manager_for(proxy, **self._pool_kwargs(proxy_kwargs))


def _make_session(settings: ConnectionSettings) -> requests.Session:
    session = requests.Session()
    if settings.proxy_url:
        session.proxies = {"http": settings.proxy_url, "https": settings.proxy_url}
    if settings.tls is not None:
        session.mount("https://", TLSAdapter(settings.tls))
        if settings.tls.verify_mode == ssl.CERT_NONE:
            session.verify = False
    return session


def _closing(response: requests.Response):
    try:
        response.close()
    except Exception as e:
        logger.warning("response_close_failed", error=str(e))


class Connection:
    """
    HTTP connection owning one session and one body encoder.

    Not safe for concurrent use: the encoder buffer is reused per request.
    """

    def __init__(self, settings: ConnectionSettings, observer: Optional[Observer] = None):
        self.settings = settings
        self.observer = observer or NullObserver()
        self.url = settings.url
        self.username = settings.username
        self.password = settings.password
        self.encoder = make_encoder(settings.compression_level, settings.content_type)
        self.session = _make_session(settings)
        self.connected = False

    def connect(self, timeout: Optional[float] = None):
        """Arm the connection. Dialing is deferred to the first request."""
        self.connected = True

    def is_connected(self) -> bool:
        return self.connected

    def close(self):
        if self.connected:
            logger.debug("connection_closed", url=self.url)
        self.connected = False
        self.session.close()

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]],
        body: Any,
    ) -> tuple[int, bytes]:
        """
        Encode body and send it.

        A body of None sends no payload.

        Raises:
            EncodeError: If body cannot be encoded; nothing is sent
            TransportError: On network failure
            HTTPStatusError: On status >= 300
        """
        url = make_url(self.url, path, params)
        logger.debug("http_request", method=method, url=url)

        if body is None:
            return self.execute(method, url, None)

        try:
            self.encoder.marshal(body)
        except EncodeError as e:
            logger.warning("body_encode_failed", error=str(e.cause), body=repr(body))
            raise
        return self.execute(method, url, self.encoder.reader())

    def request_lines(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]],
        bodies: list,
    ) -> tuple[int, bytes]:
        """Send several objects in one newline-delimited JSON body."""
        url = make_url(self.url, path, params)
        logger.debug("http_request", method=method, url=url, count=len(bodies))
        try:
            self.encoder.marshal_lines(bodies)
        except EncodeError as e:
            logger.warning("body_encode_failed", error=str(e.cause), count=len(bodies))
            raise
        return self.execute(method, url, self.encoder.reader())

    def execute(self, method: str, url: str, body: Optional[io.BytesIO]) -> tuple[int, bytes]:
        """
        Perform one request/response exchange.

        Returns:
            Tuple of (status_code, response_body) for status < 300
        """
        headers = {"Accept": "application/json"}
        headers.update(self.settings.headers)
        if body is not None:
            self.encoder.add_header(headers)

        auth = None
        if self.username or self.password:
            auth = (self.username, self.password)

        try:
            response = self.session.request(
                method,
                url,
                data=body,
                headers=headers,
                auth=auth,
                timeout=self.settings.timeout,
                stream=True,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            self.connected = False
            self.observer.on_write_error()
            logger.warning("http_transport_failed", url=url, error=str(e))
            raise TransportError(e) from e

        if body is not None:
            self.observer.on_write_bytes(body.getbuffer().nbytes)

        try:
            status = response.status_code
            if status >= 300:
                self.connected = False
                raise HTTPStatusError(status, response.reason or "")

            try:
                content = response.content
            except requests.RequestException as e:
                self.connected = False
                self.observer.on_read_error()
                raise TransportError(e) from e
            self.observer.on_read_bytes(len(content))
            return status, content
        finally:
            _closing(response)
