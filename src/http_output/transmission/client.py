"""
Publishing client for the HTTP output.

Turns a batch of events into POST requests and decides, per response
status, whether an event is delivered, dropped or handed back for retry:

    status < 300              delivered
    status >= 500 or 429      retryable, returned to the caller
    300 <= status < 500       rejected by the endpoint, dropped
    encode failure            dropped
    transport failure         retryable, returned to the caller
"""
import time
from typing import Any, Optional, Sequence

import structlog

from .connection import Connection
from .errors import EncodeError, HTTPOutputError, HTTPStatusError, NotConnectedError
from .observer import NullObserver, Observer
from .settings import FORMAT_JSON_LINES, ConnectionSettings, RoutingSettings

logger = structlog.get_logger()


class Client:
    """
    HTTP publishing client for one endpoint.

    Owns one Connection. Must be driven by a single thread at a time.
    """

    def __init__(
        self,
        settings: ConnectionSettings,
        routing: Optional[RoutingSettings] = None,
        observer: Optional[Observer] = None,
    ):
        self.settings = settings
        self.routing = routing or RoutingSettings()
        self.observer = observer or NullObserver()
        self.connection = Connection(settings, observer=self.observer)
        logger.info("http_client_created", url=settings.url)

    @property
    def params(self):
        return self.routing.params or None

    def clone(self) -> "Client":
        """
        Independent client for the same endpoint.

        Routing parameters are left out: they typically carry per-client
        state (such as an ingest pipeline) that must not be duplicated.
        """
        return Client(self.settings, observer=self.observer)

    def connect(self, timeout: Optional[float] = None):
        self.connection.connect(timeout)

    def is_connected(self) -> bool:
        return self.connection.is_connected()

    def close(self):
        self.connection.close()

    def publish_events(self, events: Sequence[Any]) -> tuple[list, Optional[HTTPOutputError]]:
        """
        Publish events in order.

        Stops at the first retryable failure. Events from that one onward
        are returned for retry together with the error.

        Args:
            events: JSON-serializable event records

        Returns:
            Tuple of (unsent_events, error); ([], None) on full success
        """
        if not events:
            return [], None

        begin = time.monotonic()
        self.observer.on_published(1)

        if not self.is_connected():
            self.observer.on_failed(len(events))
            return list(events), NotConnectedError()

        if self.settings.batch_publish:
            unsent, err = self._publish_batch(events)
        else:
            unsent, err = self._publish_each(events)

        self.observer.on_acked(len(events) - len(unsent))
        self.observer.on_failed(len(unsent))

        if unsent:
            logger.warning(
                "publish_events_incomplete",
                total=len(events),
                unsent=len(unsent),
                error=str(err),
            )
            return unsent, err

        logger.debug(
            "publish_events_complete",
            count=len(events),
            elapsed_s=round(time.monotonic() - begin, 4),
        )
        return [], None

    def _publish_each(self, events: Sequence[Any]) -> tuple[list, Optional[HTTPOutputError]]:
        for i, event in enumerate(events):
            try:
                self.publish_event(event)
            except HTTPOutputError as e:
                return list(events[i:]), e
        return [], None

    def _publish_batch(self, events: Sequence[Any]) -> tuple[list, Optional[HTTPOutputError]]:
        try:
            if self.settings.format == FORMAT_JSON_LINES:
                status, _ = self.connection.request_lines("POST", "", self.params, list(events))
            else:
                status, _ = self.connection.request("POST", "", self.params, list(events))
        except EncodeError:
            # Fall back to one request per event so only bad events are dropped
            logger.warning("batch_encode_failed_publishing_individually", count=len(events))
            return self._publish_each(events)
        except HTTPStatusError as e:
            if e.retryable:
                return list(events), e
            logger.warning("batch_rejected_dropping", status=e.status_code, count=len(events))
            return [], None
        except HTTPOutputError as e:
            return list(events), e

        logger.debug("batch_published", status=status, count=len(events))
        return [], None

    def publish_event(self, event: Any):
        """
        Publish one event.

        Raises:
            NotConnectedError: If the connection is not armed
            TransportError: On network failure (retryable)
            HTTPStatusError: On status >= 500 or 429 (retryable)
        """
        if not self.is_connected():
            raise NotConnectedError()

        try:
            self.connection.request("POST", "", self.params, event)
        except EncodeError:
            # Unencodable events are never retried
            return
        except HTTPStatusError as e:
            if e.retryable:
                logger.warning("publish_event_failed", status=e.status_code, error=str(e))
                raise
            logger.warning("publish_event_rejected_dropping", status=e.status_code, error=str(e))
            return
