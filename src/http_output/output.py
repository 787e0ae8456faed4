"""
Build the configured HTTP output: one backoff-wrapped client per host.
"""
import threading
from typing import Optional

import structlog

from .config import Config
from .tls import load_tls_context
from .transmission.backoff import BackoffClient
from .transmission.client import Client
from .transmission.observer import Observer
from .transmission.settings import ConnectionSettings, RoutingSettings
from .transmission.urls import make_host_url, parse_proxy_url

logger = structlog.get_logger()


def make_http(
    config: Config,
    observer: Optional[Observer] = None,
    done: Optional[threading.Event] = None,
) -> list[BackoffClient]:
    """
    Create clients for every host in the configuration.

    Args:
        config: Output configuration
        observer: Counter sink shared by all clients
        done: Event that interrupts backoff waits on shutdown

    Raises:
        ConfigError: On an invalid host, proxy or TLS setting
    """
    tls = load_tls_context(config)
    proxy_url = parse_proxy_url(config.proxy_url)
    if proxy_url:
        logger.info("using_proxy", proxy_url=proxy_url)

    routing = RoutingSettings(params=config.params)
    done = done or threading.Event()

    clients = []
    for host in config.hosts:
        url = make_host_url(host, config.protocol, config.path)
        logger.info("making_client_for_host", host=host, url=url)

        settings = ConnectionSettings(
            url=url,
            proxy_url=proxy_url,
            tls=tls,
            username=config.username,
            password=config.password,
            timeout=config.timeout_s,
            compression_level=config.compression_level,
            headers=config.headers,
            content_type=config.content_type or None,
            format=config.format,
            batch_publish=config.batch_publish,
        )
        client = Client(settings, routing, observer)
        clients.append(BackoffClient(
            client,
            init=config.backoff_init_s,
            max=config.backoff_max_s,
            fail_max=config.circuit_breaker_fail_max,
            reset_timeout=config.circuit_breaker_timeout_s,
            done=done,
        ))

    return clients
