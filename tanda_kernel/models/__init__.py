"""ORM models for every entity the reconciliation jobs read or write."""

from tanda_kernel.models.job_log import JobLogEntry, JobRunStatus
from tanda_kernel.models.loan import InterestAccrualRecord, Loan, LoanStatus
from tanda_kernel.models.notification import (
    TERMINAL_REMINDER_STATUSES,
    Notification,
    NotificationStatus,
    RecipientProfile,
    Reminder,
    ReminderStatus,
)
from tanda_kernel.models.swap import (
    PENDING_SWAP_STATUSES,
    SwapEvent,
    SwapRequest,
    SwapStatus,
)
from tanda_kernel.models.wallet import (
    LedgerEntryType,
    Reservation,
    ReservationStatus,
    Wallet,
    WalletLedgerEntry,
)
from tanda_kernel.models.xnscore import (
    DecayHistoryEntry,
    RecoveryPeriod,
    ScoreHistoryEntry,
    ScoreTrigger,
    TenureHistoryEntry,
    XnScore,
)


def import_all_models() -> None:
    """Ensure every model is registered on ``Base.metadata``.

    The imports above already do this; the function exists so callers that
    only need table creation have an explicit hook.
    """


__all__ = [
    "DecayHistoryEntry",
    "InterestAccrualRecord",
    "JobLogEntry",
    "JobRunStatus",
    "LedgerEntryType",
    "Loan",
    "LoanStatus",
    "Notification",
    "NotificationStatus",
    "PENDING_SWAP_STATUSES",
    "RecipientProfile",
    "RecoveryPeriod",
    "Reminder",
    "ReminderStatus",
    "Reservation",
    "ReservationStatus",
    "ScoreHistoryEntry",
    "ScoreTrigger",
    "SwapEvent",
    "SwapRequest",
    "SwapStatus",
    "TERMINAL_REMINDER_STATUSES",
    "TenureHistoryEntry",
    "Wallet",
    "WalletLedgerEntry",
    "XnScore",
    "import_all_models",
]
