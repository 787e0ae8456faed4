"""
Circuit breakers for HTTP transmission.

One breaker per endpoint URL. A breaker opens after fail_max consecutive
failed publishes and lets a trial publish through after reset_timeout.
"""
from typing import Optional
from pybreaker import CircuitBreaker, CircuitBreakerListener
import structlog

logger = structlog.get_logger()

# Breakers keyed by endpoint URL
_breakers: dict[str, CircuitBreaker] = {}


class _StateChangeLogger(CircuitBreakerListener):
    """Log circuit breaker state changes."""

    def state_change(self, cb: CircuitBreaker, old_state, new_state):
        logger.warning(
            "circuit_breaker_state_change",
            breaker=cb.name,
            old_state=getattr(old_state, "name", old_state),
            new_state=getattr(new_state, "name", new_state),
        )


def get_circuit_breaker(
    name: str,
    fail_max: int = 5,
    timeout_duration: float = 60
) -> CircuitBreaker:
    """
    Get or create the circuit breaker for an endpoint.

    Args:
        name: Endpoint URL
        fail_max: Number of failures before opening (default: 5)
        timeout_duration: Seconds before attempting to close (default: 60)

    Returns:
        CircuitBreaker instance
    """
    breaker = _breakers.get(name)
    if breaker is None:
        breaker = CircuitBreaker(
            fail_max=fail_max,
            reset_timeout=timeout_duration,
            throw_new_error_on_trip=False,
            listeners=[_StateChangeLogger()],
            name=name
        )
        _breakers[name] = breaker
        logger.info(
            "circuit_breaker_created",
            breaker=name,
            fail_max=fail_max,
            timeout_duration=timeout_duration
        )

    return breaker


def is_circuit_open(name: str) -> bool:
    """
    Check if the breaker for an endpoint is open.

    Returns:
        True if circuit is open (should not attempt requests)
    """
    breaker: Optional[CircuitBreaker] = _breakers.get(name)
    if breaker is None:
        return False
    return breaker.current_state == 'open'


def reset_circuit_breakers():
    """Close and forget all breakers."""
    for breaker in _breakers.values():
        breaker.close()
    _breakers.clear()
