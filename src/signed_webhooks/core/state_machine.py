"""State machine for one outbound delivery.

Each ``deliver()`` call walks through::

    IDLE -> ATTEMPTING(1) -> SUCCEEDED
                          -> BACKOFF(1) -> ATTEMPTING(2) -> ...
                                                        -> FAILED

The machine only tracks states and attempt numbers. The sender decides what
happens in each state (issue the POST, sleep for the backoff), which keeps the
scheduling testable with an injected sleep and no real timers.

Examples:
    Driving the machine by hand::

        machine = DeliveryStateMachine(max_attempts=2)
        machine.start_attempt()        # ATTEMPTING, attempt 1
        machine.record_failure()       # BACKOFF
        machine.start_attempt()        # ATTEMPTING, attempt 2
        machine.record_failure()       # FAILED
        assert machine.is_terminal
"""

from signed_webhooks.models import DeliveryState

TERMINAL_STATES = {DeliveryState.SUCCEEDED, DeliveryState.FAILED}


class DeliveryStateMachine:
    """Tracks the state of one delivery across its attempts.

    Attributes:
        max_attempts: Total attempts allowed.
        state: Current state.
        attempt: Number of the current (or last) attempt; 0 before the first.
    """

    def __init__(self, max_attempts: int) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.state = DeliveryState.IDLE
        self.attempt = 0

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def attempts_remaining(self) -> int:
        return self.max_attempts - self.attempt

    def start_attempt(self) -> int:
        """Move to ATTEMPTING and return the new attempt number.

        Raises:
            RuntimeError: If called outside IDLE or BACKOFF.
        """
        if self.state not in (DeliveryState.IDLE, DeliveryState.BACKOFF):
            raise RuntimeError(f"Cannot start an attempt from state {self.state.value}")

        self.attempt += 1
        self.state = DeliveryState.ATTEMPTING
        return self.attempt

    def record_success(self) -> DeliveryState:
        """Move from ATTEMPTING to SUCCEEDED."""
        self._require_attempting()
        self.state = DeliveryState.SUCCEEDED
        return self.state

    def record_failure(self) -> DeliveryState:
        """Move from ATTEMPTING to BACKOFF, or to FAILED on the last attempt."""
        self._require_attempting()
        if self.attempt >= self.max_attempts:
            self.state = DeliveryState.FAILED
        else:
            self.state = DeliveryState.BACKOFF
        return self.state

    def _require_attempting(self) -> None:
        if self.state != DeliveryState.ATTEMPTING:
            raise RuntimeError(f"No attempt in flight (state {self.state.value})")
