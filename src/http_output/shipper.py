"""
Event shipper.

Reads newline-delimited JSON events from a stream, groups them into
batches and hands each batch to the configured HTTP clients:

1. Batches are offered to the clients in configured order
2. Events a client hands back are offered to the next client
3. A batch still undelivered after max_retries rounds is dropped and logged
4. SIGTERM/SIGINT stop reading and interrupt backoff waits
"""
import json
import signal
import sys
import threading
from typing import Any, Iterator, Optional, TextIO
import structlog

from .config import Config, load_config
from .output import make_http
from .transmission.backoff import BackoffClient
from .transmission.errors import ConfigError
from .transmission.observer import CountingObserver

logger = structlog.get_logger()


def read_events(stream: TextIO) -> Iterator[Any]:
    """Yield decoded events, skipping blank and malformed lines."""
    for lineno, line in enumerate(stream, 1):
        line = line.strip()
        if not line:
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("input_line_invalid_json", line=lineno, error=str(e))


class EventShipper:
    """Batches events from a stream and publishes them over HTTP."""

    def __init__(self, config: Config, clients: Optional[list[BackoffClient]] = None):
        self.config = config
        self.observer = CountingObserver()
        self._shutdown_event = threading.Event()
        if clients is None:
            clients = make_http(config, self.observer, self._shutdown_event)
        self.clients = clients
        self.dropped = 0

    def connect(self):
        for client in self.clients:
            client.connect()

    def dispatch(self, batch: list) -> list:
        """
        Publish one batch.

        Returns:
            Events that could not be delivered
        """
        pending = list(batch)
        for attempt in range(self.config.max_retries + 1):
            for client in self.clients:
                if not pending or self._shutdown_event.is_set():
                    break
                pending, err = client.publish_events(pending)
                if err is not None:
                    logger.debug(
                        "dispatch_attempt_failed",
                        url=client.url,
                        attempt=attempt,
                        pending=len(pending),
                        error=str(err),
                    )
            if not pending or self._shutdown_event.is_set():
                break

        if pending:
            self.dropped += len(pending)
            logger.error("batch_dropped_after_retries", count=len(pending), retries=self.config.max_retries)
        return pending

    def run(self, stream: TextIO):
        """Ship every event in the stream, then close the clients."""
        logger.info(
            "shipper_starting",
            hosts=[client.url for client in self.clients],
            batch_size=self.config.batch_size,
        )
        self.connect()

        batch: list = []
        try:
            for event in read_events(stream):
                if self._shutdown_event.is_set():
                    break
                batch.append(event)
                if len(batch) >= self.config.batch_size:
                    self.dispatch(batch)
                    batch = []

            if batch and not self._shutdown_event.is_set():
                self.dispatch(batch)
        finally:
            self.stop()

        logger.info("shipper_finished", dropped=self.dropped, **self.observer.snapshot())

    def handle_shutdown(self, signum, frame):
        """Handle SIGTERM/SIGINT for graceful shutdown."""
        sig_name = signal.Signals(signum).name
        logger.info("shutdown_signal_received", signal=sig_name)
        self._shutdown_event.set()

    def stop(self):
        self._shutdown_event.set()
        for client in self.clients:
            client.close()


def configure_logging():
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True
    )


def main(config_path: Optional[str] = None, stream: Optional[TextIO] = None):
    """
    Main entry point.

    Args:
        config_path: Path to configuration file (optional)
        stream: Event source, stdin by default
    """
    configure_logging()

    try:
        config = load_config(config_path)
        shipper = EventShipper(config)
    except ConfigError as e:
        logger.error("invalid_configuration", error=str(e))
        sys.exit(1)

    signal.signal(signal.SIGTERM, shipper.handle_shutdown)
    signal.signal(signal.SIGINT, shipper.handle_shutdown)

    try:
        shipper.run(stream or sys.stdin)
    except Exception as e:
        logger.error("shipper_failed", error=str(e))
        sys.exit(1)

    if shipper.dropped:
        sys.exit(2)
