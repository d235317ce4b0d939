"""
Typed exception hierarchy for the reconciliation jobs.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, safe to put in an HTTP body) and
structured attributes instead of only a message string.

    TandaError (base)
    |
    +-- ConfigurationError
    |
    +-- JobError
    |   +-- TaskNotRegisteredError
    |   +-- CandidateFetchError
    |
    +-- LedgerError
    |   +-- WalletNotFoundError
    |   +-- ReservationStateError
    |
    +-- NotificationError
    |   +-- MissingContactError
    |   +-- ChannelDispatchError
    |   +-- UnsupportedChannelError
    |
    +-- ConcurrencyError
    |   +-- StaleTransitionError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Error classes map onto the three failure classes of a job run:

    Fatal/top-level   ConfigurationError, CandidateFetchError
                      -> HTTP 500, the batch does not run.
    Per-item domain   LedgerError, NotificationError
                      -> item recorded as failed, batch continues.
    Stale transition  StaleTransitionError
                      -> item skipped (another run got there first).
"""


class TandaError(Exception):
    """
    Base exception for all reconciliation errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "TANDA_ERROR"


# Configuration


class ConfigurationError(TandaError):
    """Required configuration or credentials are missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid configuration for {setting}: {reason}")


# Job framework


class JobError(TandaError):
    """Base exception for job framework errors."""

    code: str = "JOB_ERROR"


class TaskNotRegisteredError(JobError):
    """No task is registered under the requested task type."""

    code: str = "TASK_NOT_REGISTERED"

    def __init__(self, task_type: str, available: tuple[str, ...] = ()):
        self.task_type = task_type
        self.available = available
        super().__init__(
            f"No task registered for type '{task_type}'. "
            f"Available: {list(available)}"
        )


class CandidateFetchError(JobError):
    """Candidate selection failed; the whole invocation is aborted."""

    code: str = "CANDIDATE_FETCH_FAILED"

    def __init__(self, job_name: str, reason: str):
        self.job_name = job_name
        self.reason = reason
        super().__init__(f"Candidate selection failed for {job_name}: {reason}")


# Ledger


class LedgerError(TandaError):
    """Base exception for wallet and reservation errors."""

    code: str = "LEDGER_ERROR"


class WalletNotFoundError(LedgerError):
    """The wallet owning a reservation does not exist."""

    code: str = "WALLET_NOT_FOUND"

    def __init__(self, wallet_id: str):
        self.wallet_id = wallet_id
        super().__init__(f"Wallet not found: {wallet_id}")


class ReservationStateError(LedgerError):
    """Reservation is not in a state that allows the requested transition."""

    code: str = "RESERVATION_STATE_INVALID"

    def __init__(self, reservation_id: str, status: str, expected: str):
        self.reservation_id = reservation_id
        self.status = status
        self.expected = expected
        super().__init__(
            f"Reservation {reservation_id} is {status}, expected {expected}"
        )


# Notifications


class NotificationError(TandaError):
    """Base exception for notification dispatch errors."""

    code: str = "NOTIFICATION_ERROR"


class MissingContactError(NotificationError):
    """Recipient profile lacks the contact field a channel needs."""

    code: str = "MISSING_CONTACT"

    def __init__(self, user_id: str, channel: str, field: str):
        self.user_id = user_id
        self.channel = channel
        self.field = field
        super().__init__(
            f"User {user_id} has no {field} for {channel} delivery"
        )


class ChannelDispatchError(NotificationError):
    """A channel sender reported failure."""

    code: str = "CHANNEL_DISPATCH_FAILED"

    def __init__(self, channel: str, recipient: str, reason: str):
        self.channel = channel
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"{channel} delivery to {recipient} failed: {reason}")


class UnsupportedChannelError(NotificationError):
    """The reminder names a channel outside the closed channel set."""

    code: str = "UNSUPPORTED_CHANNEL"

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Unsupported notification channel: {channel}")


# Concurrency


class ConcurrencyError(TandaError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleTransitionError(ConcurrencyError):
    """A conditional update matched no row: another run already moved it."""

    code: str = "STALE_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, expected: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected = expected
        super().__init__(
            f"{entity_type} {entity_id} is no longer {expected}: "
            "modified by another run"
        )


# Immutability


class ImmutabilityError(TandaError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
