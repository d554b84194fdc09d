# ABOUTME: Per-provider circuit breaker persisted on the provider config row.
# ABOUTME: CLOSED -> OPEN after repeated failures, OPEN -> HALF_OPEN after cooldown, one trial call.

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from tome.db.provider_configs import ProviderConfig, ProviderConfigRepository, utcnow
from tome.providers.errors import CircuitOpenError
from tome.providers.types import CircuitState, ProviderHealth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Thresholds shared by every provider's breaker."""

    failure_threshold: int = 5
    cooldown_seconds: float = 60.0

    @property
    def cooldown(self) -> timedelta:
        return timedelta(seconds=self.cooldown_seconds)


@dataclass
class CircuitStats:
    """Read-only snapshot of one provider's breaker."""

    provider: str
    state: CircuitState
    failure_count: int
    last_failure: datetime | None
    state_changed_at: datetime | None
    retry_after: float | None = None


class CircuitBreaker:
    """Gatekeeper for outbound provider calls.

    All state lives in the provider_configs table so it survives restarts
    and is shared by every request. Transitions are compare-and-set updates;
    when two requests race, exactly one of them performs the transition and
    the other observes the result.

    The clock is injectable so tests can move time without sleeping.
    """

    def __init__(
        self,
        configs: ProviderConfigRepository,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._configs = configs
        self._config = config or CircuitBreakerConfig()
        self._clock = clock

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    def before_call(self, provider: str, operation: str) -> CircuitState:
        """Decide whether a call may go out.

        Returns:
            The state under which the call is admitted. HALF_OPEN means this
            caller holds the single trial slot.

        Raises:
            CircuitOpenError: If the call must be rejected without contacting
                the provider.
        """
        row = self._configs.find_by_provider(provider)
        if row is None or row.circuit_state == CircuitState.CLOSED:
            return CircuitState.CLOSED

        now = self._clock()
        cooldown = self._config.cooldown

        if row.circuit_state == CircuitState.OPEN:
            opened_at = row.last_failure or row.state_changed_at
            if opened_at is not None and now - opened_at < cooldown:
                remaining = cooldown - (now - opened_at)
                raise CircuitOpenError(provider, operation, retry_after=remaining.total_seconds())
            if self._configs.transition_state(
                provider, CircuitState.OPEN, CircuitState.HALF_OPEN, now
            ):
                logger.info("Circuit for %s half-open, admitting trial %s", provider, operation)
                return CircuitState.HALF_OPEN
            raise CircuitOpenError(provider, operation)

        # HALF_OPEN: a trial is in flight. Its slot lapses after one cooldown
        # so a caller that never reported back cannot wedge the breaker.
        started = row.state_changed_at
        if started is not None and now - started < cooldown:
            raise CircuitOpenError(provider, operation)
        if self._configs.transition_state(
            provider, CircuitState.HALF_OPEN, CircuitState.HALF_OPEN, now
        ):
            logger.info("Stale trial for %s expired, admitting new trial %s", provider, operation)
            return CircuitState.HALF_OPEN
        raise CircuitOpenError(provider, operation)

    def record_success(self, provider: str) -> None:
        """A call completed or the provider answered well-formed NotFound."""
        row = self._require(provider)
        now = self._clock()
        if row.circuit_state != CircuitState.CLOSED:
            if self._configs.transition_state(
                provider, row.circuit_state, CircuitState.CLOSED, now,
                health=ProviderHealth.HEALTHY,
            ):
                logger.info("Circuit for %s closed after successful call", provider)
        if row.failure_count or row.health_status != ProviderHealth.HEALTHY:
            self._configs.reset_failures(provider, now)

    def record_failure(self, provider: str) -> None:
        """A call failed in a way that says the provider is unhealthy."""
        now = self._clock()
        count = self._configs.increment_failure(provider, now)
        row = self._require(provider)

        if row.circuit_state == CircuitState.HALF_OPEN:
            if self._configs.transition_state(
                provider, CircuitState.HALF_OPEN, CircuitState.OPEN, now,
                health=ProviderHealth.UNAVAILABLE,
            ):
                logger.warning("Circuit for %s re-opened: trial call failed", provider)
        elif row.circuit_state == CircuitState.CLOSED and count >= self._config.failure_threshold:
            if self._configs.transition_state(
                provider, CircuitState.CLOSED, CircuitState.OPEN, now,
                health=ProviderHealth.UNAVAILABLE,
            ):
                logger.warning(
                    "Circuit for %s opened after %d consecutive failures", provider, count
                )
        else:
            logger.debug("Provider %s failure count now %d", provider, count)

    def reset(self, provider: str) -> CircuitStats:
        """Force the breaker closed and clear its failure count."""
        self._require(provider)
        now = self._clock()
        self._configs.transition_state(
            provider, None, CircuitState.CLOSED, now, health=ProviderHealth.HEALTHY
        )
        self._configs.reset_failures(provider, now)
        logger.info("Circuit for %s manually reset", provider)
        return self.stats(provider)

    def stats(self, provider: str) -> CircuitStats:
        """Snapshot of the breaker. Reading never changes state."""
        row = self._require(provider)
        retry_after = None
        if row.circuit_state == CircuitState.OPEN:
            opened_at = row.last_failure or row.state_changed_at
            if opened_at is not None:
                remaining = self._config.cooldown - (self._clock() - opened_at)
                retry_after = max(remaining.total_seconds(), 0.0)
        return CircuitStats(
            provider=row.provider,
            state=row.circuit_state,
            failure_count=row.failure_count,
            last_failure=row.last_failure,
            state_changed_at=row.state_changed_at,
            retry_after=retry_after,
        )

    def _require(self, provider: str) -> ProviderConfig:
        row = self._configs.find_by_provider(provider)
        if row is None:
            raise ValueError(f"No configuration for provider '{provider}'")
        return row
