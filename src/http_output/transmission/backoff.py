"""
Backoff wrapper around a publishing client.

Reconnects a disconnected client before publishing, closes it after a
failed publish and waits with capped exponential backoff (equal jitter)
before returning. Publishes go through the endpoint's circuit breaker;
while it is open batches are handed back untouched, but only after the
breaker's reset timeout has elapsed, so the caller's next attempt is the
half-open trial rather than another refusal.
"""
import random
import threading
from typing import Any, Optional, Sequence

from pybreaker import CircuitBreakerError
import structlog

from .circuit_breaker import get_circuit_breaker
from .client import Client
from .errors import CircuitOpenError, HTTPOutputError

logger = structlog.get_logger()


class Backoff:
    """Equal-jitter exponential backoff between init and max seconds."""

    def __init__(self, init: float, max: float, done: Optional[threading.Event] = None):
        self.init = init
        self.max = max
        self.duration = init
        self.done = done or threading.Event()

    def reset(self):
        self.duration = self.init

    def next_wait(self) -> float:
        # Half fixed, half random
        wait = self.duration / 2 + random.uniform(0, self.duration / 2)
        self.duration = min(self.duration * 2, self.max)
        return wait

    def wait(self) -> bool:
        """
        Sleep for the next backoff interval.

        Returns:
            False if interrupted by the done event
        """
        return not self.done.wait(timeout=self.next_wait())

    def wait_for(self, seconds: float) -> bool:
        """Sleep a fixed interval. Returns False if interrupted by the done event."""
        return not self.done.wait(timeout=seconds)

    def wait_on_error(self, err: Optional[Exception]) -> bool:
        if err is None:
            self.reset()
            return True
        return self.wait()


class _PublishFailed(Exception):
    def __init__(self, unsent: list, error: HTTPOutputError):
        super().__init__(str(error))
        self.unsent = unsent
        self.error = error


class BackoffClient:
    """Client wrapper applying reconnect, backoff and circuit breaking."""

    def __init__(
        self,
        client: Client,
        init: float = 1.0,
        max: float = 60.0,
        fail_max: int = 5,
        reset_timeout: float = 60,
        done: Optional[threading.Event] = None,
    ):
        self.client = client
        self.backoff = Backoff(init, max, done)
        self.breaker = get_circuit_breaker(
            client.settings.url,
            fail_max=fail_max,
            timeout_duration=reset_timeout,
        )

    @property
    def url(self) -> str:
        return self.client.settings.url

    def connect(self, timeout: Optional[float] = None) -> Optional[HTTPOutputError]:
        try:
            self.client.connect(timeout)
            err = None
        except HTTPOutputError as e:
            logger.warning("connect_failed", url=self.url, error=str(e))
            err = e
        self.backoff.wait_on_error(err)
        return err

    def close(self):
        self.backoff.done.set()
        self.client.close()

    def is_connected(self) -> bool:
        return self.client.is_connected()

    def _attempt(self, events: Sequence[Any]) -> list:
        unsent, err = self.client.publish_events(events)
        if err is not None:
            raise _PublishFailed(unsent, err)
        return unsent

    def publish_events(self, events: Sequence[Any]) -> tuple[list, Optional[HTTPOutputError]]:
        """
        Publish through the breaker, reconnecting first if needed.

        Returns:
            Tuple of (unsent_events, error) as Client.publish_events
        """
        if not events:
            return [], None

        if not self.client.is_connected():
            err = self.connect()
            if err is not None:
                return list(events), err

        try:
            unsent = self.breaker.call(self._attempt, events)
            err = None
        except CircuitBreakerError:
            logger.warning(
                "circuit_open_returning_batch",
                url=self.url,
                count=len(events),
                wait_s=self.breaker.reset_timeout,
            )
            # Hold the batch until the breaker is due for its trial call
            self.backoff.wait_for(self.breaker.reset_timeout)
            return list(events), CircuitOpenError(f"circuit open for {self.url}")
        except _PublishFailed as e:
            unsent, err = e.unsent, e.error
            self.client.close()
            logger.warning(
                "publish_failed_backing_off",
                url=self.url,
                unsent=len(unsent),
                error=str(err),
                backoff_s=self.backoff.duration,
            )

        self.backoff.wait_on_error(err)
        return unsent, err
