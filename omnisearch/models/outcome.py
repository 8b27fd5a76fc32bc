"""Adapter call outcomes and the per-call state machine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AdapterStatus(str, Enum):
    """Settled status of one adapter call."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


class AdapterState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({AdapterState.SUCCESS, AdapterState.FAILURE, AdapterState.TIMEOUT})

_ALLOWED_TRANSITIONS: dict[AdapterState, frozenset[AdapterState]] = {
    AdapterState.PENDING: frozenset({AdapterState.RUNNING, AdapterState.TIMEOUT}),
    AdapterState.RUNNING: _TERMINAL_STATES,
    AdapterState.SUCCESS: frozenset(),
    AdapterState.FAILURE: frozenset(),
    AdapterState.TIMEOUT: frozenset(),
}


class IllegalStateTransition(RuntimeError):
    """Raised when an adapter call leaves a terminal state."""


@dataclass
class AdapterCall:
    """Lifecycle of a single (provider, service) call within one request.

    PENDING -> RUNNING -> {SUCCESS | FAILURE | TIMEOUT}. A call still
    waiting for a concurrency slot may go straight from PENDING to TIMEOUT
    when the global deadline elapses.
    """

    provider: str
    service: str
    state: AdapterState = AdapterState.PENDING
    history: list[AdapterState] = field(default_factory=lambda: [AdapterState.PENDING])

    @property
    def key(self) -> str:
        return f"{self.provider}.{self.service}"

    def transition(self, new_state: AdapterState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise IllegalStateTransition(
                f"{self.key}: cannot move from {self.state.value} to {new_state.value}"
            )
        self.state = new_state
        self.history.append(new_state)


@dataclass(frozen=True)
class AdapterOutcome:
    """Settled result of one adapter call.

    Attributes:
        provider: Provider id, e.g. 'google'
        service: Service within the provider, e.g. 'gmail'
        status: success, failure or timeout
        payload: Provider-native payload (success only)
        error: Error description (failure/timeout only)
        duration_ms: Wall time of the call in milliseconds
    """

    provider: str
    service: str
    status: AdapterStatus
    payload: Any = None
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.provider}.{self.service}"

    @property
    def succeeded(self) -> bool:
        return self.status is AdapterStatus.SUCCESS

    @classmethod
    def success(cls, provider: str, service: str, payload: Any, duration_ms: float = 0.0) -> "AdapterOutcome":
        return cls(provider, service, AdapterStatus.SUCCESS, payload=payload, duration_ms=duration_ms)

    @classmethod
    def failure(cls, provider: str, service: str, error: str, duration_ms: float = 0.0) -> "AdapterOutcome":
        return cls(provider, service, AdapterStatus.FAILURE, error=error, duration_ms=duration_ms)

    @classmethod
    def timeout(cls, provider: str, service: str, error: str, duration_ms: float = 0.0) -> "AdapterOutcome":
        return cls(provider, service, AdapterStatus.TIMEOUT, error=error, duration_ms=duration_ms)
