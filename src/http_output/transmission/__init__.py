"""Transmission layer for publishing events to an HTTP endpoint."""
from .client import Client
from .connection import Connection
from .encoder import GzipEncoder, JSONEncoder, make_encoder
from .backoff import BackoffClient
from .circuit_breaker import get_circuit_breaker, is_circuit_open
from .errors import (
    CircuitOpenError,
    ConfigError,
    EncodeError,
    HTTPOutputError,
    HTTPStatusError,
    NotConnectedError,
    TransportError,
)
from .observer import CountingObserver, NullObserver, Observer
from .settings import ConnectionSettings, RoutingSettings

__all__ = [
    'Client',
    'Connection',
    'JSONEncoder',
    'GzipEncoder',
    'make_encoder',
    'BackoffClient',
    'get_circuit_breaker',
    'is_circuit_open',
    'HTTPOutputError',
    'ConfigError',
    'NotConnectedError',
    'EncodeError',
    'TransportError',
    'HTTPStatusError',
    'CircuitOpenError',
    'Observer',
    'NullObserver',
    'CountingObserver',
    'ConnectionSettings',
    'RoutingSettings',
]
