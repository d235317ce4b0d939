"""Tests for the typed exception hierarchy."""

import pytest

from tanda_kernel.exceptions import (
    CandidateFetchError,
    ChannelDispatchError,
    ConcurrencyError,
    ConfigurationError,
    JobError,
    LedgerError,
    MissingContactError,
    NotificationError,
    ReservationStateError,
    StaleTransitionError,
    TandaError,
    TaskNotRegisteredError,
    UnsupportedChannelError,
    WalletNotFoundError,
)


@pytest.mark.parametrize(
    "error,parent,code",
    [
        (ConfigurationError("database.url", "missing"), TandaError, "CONFIGURATION_ERROR"),
        (TaskNotRegisteredError("nope", ("a",)), JobError, "TASK_NOT_REGISTERED"),
        (CandidateFetchError("swap_expiration", "timeout"), JobError, "CANDIDATE_FETCH_FAILED"),
        (WalletNotFoundError("w1"), LedgerError, "WALLET_NOT_FOUND"),
        (ReservationStateError("r1", "released", "reserved"), LedgerError, "RESERVATION_STATE_INVALID"),
        (MissingContactError("u1", "sms", "phone"), NotificationError, "MISSING_CONTACT"),
        (ChannelDispatchError("push", "u1", "down"), NotificationError, "CHANNEL_DISPATCH_FAILED"),
        (UnsupportedChannelError("fax"), NotificationError, "UNSUPPORTED_CHANNEL"),
        (StaleTransitionError("Loan", "l1", "status=active"), ConcurrencyError, "STALE_TRANSITION"),
    ],
)
def test_hierarchy_and_codes(error, parent, code):
    assert isinstance(error, parent)
    assert isinstance(error, TandaError)
    assert error.code == code


def test_structured_fields_preserved():
    error = MissingContactError("u1", "email", "email")
    assert (error.user_id, error.channel, error.field) == ("u1", "email", "email")
    assert "email" in str(error)
