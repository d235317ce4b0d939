"""
Notification channels for reminder delivery.

``Channel`` is the closed set of delivery channels.  Each channel has a
contact resolver (which profile field addresses the recipient) and a
``ChannelSender`` supplied by the caller.  ``NotificationDispatcher``
refuses to be built unless every channel has a sender, so adding a
channel without wiring it fails at startup rather than mid-batch.

Senders are external collaborators: they take
``(recipient, message, data)`` and return ``True`` on success.  A
``False`` return is surfaced as ``ChannelDispatchError``; exceptions
propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from tanda_kernel.exceptions import (
    ChannelDispatchError,
    MissingContactError,
    UnsupportedChannelError,
)
from tanda_kernel.logging_config import get_logger
from tanda_kernel.models.notification import RecipientProfile

logger = get_logger("batch.channels")

DEFAULT_TITLE = "TandaXn Notification"

NOTIFICATION_TITLES: dict[str, str] = {
    "contribution_reminder": "Contribution Reminder",
    "contribution_reminder_early": "Contribution Reminder",
    "contribution_reminder_midway": "Contribution Reminder",
    "contribution_reminder_urgent": "Urgent: Contribution Due Soon",
    "contribution_due_today": "Contribution Due Today",
    "grace_period_warning": "Grace Period Warning",
    "grace_period_final": "Final Grace Period Warning",
    "payout_upcoming": "Your Payout is Coming",
    "payout_received": "Payout Received",
    "cycle_starting": "New Cycle Starting",
}


def title_for(notification_type: str | None) -> str:
    return NOTIFICATION_TITLES.get(notification_type or "", DEFAULT_TITLE)


class Channel(str, Enum):
    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"

    @classmethod
    def parse(cls, value: str) -> Channel:
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedChannelError(value) from None


@runtime_checkable
class ChannelSender(Protocol):
    """Delivery provider for one channel."""

    def send(
        self, recipient: str, message: str, data: dict[str, Any] | None = None,
    ) -> bool: ...


class LoggingChannelSender:
    """Development sender: logs the delivery and reports success."""

    def __init__(self, channel: Channel):
        self.channel = channel

    def send(
        self, recipient: str, message: str, data: dict[str, Any] | None = None,
    ) -> bool:
        logger.info(
            "notification_delivered",
            extra={
                "channel": self.channel.value,
                "recipient": recipient,
                "message_length": len(message),
                "data": data or {},
            },
        )
        return True


def _push_recipient(profile: RecipientProfile) -> str | None:
    return str(profile.user_id)


def _email_recipient(profile: RecipientProfile) -> str | None:
    return profile.email


def _sms_recipient(profile: RecipientProfile) -> str | None:
    return profile.phone


# Channel -> (profile field name, resolver).  Must cover every Channel.
_RECIPIENT_RESOLVERS = {
    Channel.PUSH: ("user_id", _push_recipient),
    Channel.EMAIL: ("email", _email_recipient),
    Channel.SMS: ("phone", _sms_recipient),
}


@dataclass(frozen=True)
class Delivery:
    """What was handed to a sender."""

    channel: Channel
    recipient: str
    message: str
    data: dict[str, Any]


class NotificationDispatcher:
    """Routes a rendered message to the sender for its channel."""

    def __init__(self, senders: Mapping[Channel, ChannelSender]):
        missing = [c.value for c in Channel if c not in senders]
        if missing:
            raise ValueError(f"No sender configured for channels: {missing}")
        unresolved = [c.value for c in Channel if c not in _RECIPIENT_RESOLVERS]
        if unresolved:
            raise ValueError(f"No recipient resolver for channels: {unresolved}")
        self._senders = dict(senders)

    @classmethod
    def logging_only(cls) -> NotificationDispatcher:
        return cls({channel: LoggingChannelSender(channel) for channel in Channel})

    def dispatch(
        self,
        channel: Channel,
        profile: RecipientProfile,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Delivery:
        """Send ``message`` to ``profile`` over ``channel``.

        Raises:
            MissingContactError: The profile lacks the channel's contact field.
            ChannelDispatchError: The sender returned ``False``.
        """
        field_name, resolve = _RECIPIENT_RESOLVERS[channel]
        recipient = resolve(profile)
        if not recipient:
            raise MissingContactError(str(profile.user_id), channel.value, field_name)

        payload = dict(data or {})
        if not self._senders[channel].send(recipient, message, payload):
            raise ChannelDispatchError(channel.value, recipient, "sender reported failure")

        return Delivery(channel=channel, recipient=recipient, message=message, data=payload)
