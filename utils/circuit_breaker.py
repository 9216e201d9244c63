"""
Circuit Breaker and Resilience Utilities

Provides retry logic, per-attempt timeouts, fallback chains, and circuit
breaker patterns for external provider calls.

Usage:
    from utils.circuit_breaker import resilient_call, with_fallback

    result = await resilient_call(primary_function, max_retries=1, timeout=30)
    result = await with_fallback([live_call, offline_call], lemma)
"""

import asyncio
import inspect
from typing import Callable, TypeVar, List, Optional
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum

from utils.exceptions import ProviderError
from utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, reject calls
    HALF_OPEN = "half_open"  # Testing if recovered


@dataclass
class CircuitBreaker:
    """
    Circuit breaker to prevent cascading failures.

    When failures exceed threshold, circuit opens and rejects calls
    for a cooldown period before allowing test calls through.
    """
    name: str
    failure_threshold: int = 5
    recovery_timeout: int = 30  # seconds
    half_open_calls: int = 3

    state: CircuitState = field(default=CircuitState.CLOSED)
    failure_count: int = field(default=0)
    success_count: int = field(default=0)
    last_failure_time: Optional[datetime] = field(default=None)

    def can_execute(self) -> bool:
        """Check if a call can be made."""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if self.last_failure_time:
                elapsed = (datetime.now() - self.last_failure_time).total_seconds()
                if elapsed >= self.recovery_timeout:
                    self.state = CircuitState.HALF_OPEN
                    self.success_count = 0
                    logger.info(f"Circuit {self.name} entering half-open state")
                    return True
            return False

        # HALF_OPEN: allow limited calls
        return True

    def record_success(self):
        """Record a successful call."""
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.half_open_calls:
                self.state = CircuitState.CLOSED
                self.failure_count = 0
                logger.info(f"Circuit {self.name} closed (recovered)")
        else:
            self.failure_count = max(0, self.failure_count - 1)

    def record_failure(self):
        """Record a failed call."""
        self.failure_count += 1
        self.last_failure_time = datetime.now()

        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            logger.warning(f"Circuit {self.name} reopened (half-open failure)")
        elif self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            logger.warning(f"Circuit {self.name} opened (threshold exceeded)")

    @property
    def status(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
        }


# Global circuit breaker registry
_circuit_breakers: dict[str, CircuitBreaker] = {}


def get_circuit_breaker(name: str, **kwargs) -> CircuitBreaker:
    """Get or create a circuit breaker by name."""
    if name not in _circuit_breakers:
        _circuit_breakers[name] = CircuitBreaker(name=name, **kwargs)
    return _circuit_breakers[name]


def get_circuit_statuses() -> List[dict]:
    """Status of every registered circuit, for health reporting."""
    return [breaker.status for breaker in _circuit_breakers.values()]


async def _invoke(func: Callable[..., T], *args, **kwargs) -> T:
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def resilient_call(
    func: Callable[..., T],
    *args,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    circuit_name: Optional[str] = None,
    timeout: Optional[float] = None,
    **kwargs
) -> T:
    """
    Execute a function with retry logic and exponential backoff.

    Args:
        func: Sync or async function to execute
        max_retries: Maximum retry attempts
        initial_delay: Initial delay between retries (seconds)
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential backoff
        circuit_name: Optional circuit breaker name
        timeout: Optional per-attempt timeout (seconds)

    Returns:
        Result from the function

    Raises:
        ProviderError: If the circuit is open
        Exception: Last exception if all retries fail
    """
    circuit = get_circuit_breaker(circuit_name) if circuit_name else None

    last_exception = None
    delay = initial_delay

    for attempt in range(max_retries + 1):
        if circuit and not circuit.can_execute():
            logger.warning(f"Circuit {circuit_name} is open, skipping call")
            raise ProviderError(f"Circuit breaker {circuit_name} is open", service=circuit_name)

        try:
            if timeout is not None:
                result = await asyncio.wait_for(_invoke(func, *args, **kwargs), timeout=timeout)
            else:
                result = await _invoke(func, *args, **kwargs)

            if circuit:
                circuit.record_success()

            return result

        except Exception as e:
            last_exception = e

            if circuit:
                circuit.record_failure()

            if attempt < max_retries:
                logger.warning(
                    f"Attempt {attempt + 1}/{max_retries + 1} failed: {e!r}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await asyncio.sleep(delay)
                delay = min(delay * exponential_base, max_delay)
            else:
                logger.error(f"All {max_retries + 1} attempts failed: {e!r}")

    raise last_exception


async def with_fallback(
    functions: List[Callable[..., T]],
    *args,
    **kwargs
) -> T:
    """
    Try functions in order until one succeeds.

    Args:
        functions: List of functions to try in order
        *args, **kwargs: Arguments to pass to each function

    Returns:
        Result from first successful function

    Raises:
        Exception: If all functions fail
    """
    last_exception = None

    for i, func in enumerate(functions):
        func_name = getattr(func, '__name__', f'function_{i}')
        try:
            logger.debug(f"Trying fallback function: {func_name}")
            result = await _invoke(func, *args, **kwargs)
            if i > 0:
                logger.info(f"Fallback succeeded with: {func_name}")
            return result

        except Exception as e:
            last_exception = e
            logger.warning(f"Fallback {i + 1}/{len(functions)} failed: {e!r}")

    logger.error(f"All {len(functions)} fallback functions failed")
    raise last_exception
