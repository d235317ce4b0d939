"""Tests for the reminder dispatch job and template rendering."""

from datetime import date, timedelta
from uuid import uuid4

from tanda_kernel.models import JobRunStatus, Reminder

from tanda_batch.channels import Channel
from tanda_batch.tasks import ReminderDispatchTask
from tanda_batch.tasks.reminder_dispatch import render_template


class TestRenderTemplate:
    def test_substitutes_placeholders(self):
        message = render_template(
            "Hi {name}, {amount} is due on {due_date}.", "Kofi", 5000, date(2026, 3, 20),
        )
        assert message == "Hi Kofi, 50.00 is due on 2026-03-20."

    def test_unknown_braces_left_alone(self):
        assert render_template("{name} {circle}", "Kofi", None, None) == "Kofi {circle}"

    def test_placeholders_in_values_not_expanded(self):
        message = render_template("Hi {name}, pay {amount}", "Bob {amount}", 5000, None)

        assert message == "Hi Bob {amount}, pay 50.00"

    def test_missing_values_render_empty(self):
        assert render_template("[{amount}][{due_date}]", "Kofi", None, None) == "[][]"


def _reload(session, reminder) -> Reminder:
    session.expire_all()
    return session.get(Reminder, reminder.id)


class TestReminderDispatch:
    def test_email_delivered_and_marked_sent(self, session, seed, run_job, dispatcher, senders):
        profile = seed.profile()
        reminder = seed.reminder(profile.user_id, channel="email")

        result = run_job(ReminderDispatchTask(dispatcher=dispatcher))

        assert result.stats["sent"] == 1
        assert result.stats["sent_by_channel"] == {"push": 0, "email": 1, "sms": 0}
        recipient, message, data = senders[Channel.EMAIL].sent[0]
        assert recipient == "ama@example.com"
        assert message == "Hi Ama Mensah, 50.00 is due on 2026-03-20."
        assert data["reminder_id"] == str(reminder.id)
        reminder = _reload(session, reminder)
        assert reminder.status == "sent"
        assert reminder.sent_at is not None

    def test_push_carries_title(self, seed, run_job, dispatcher, senders):
        profile = seed.profile()
        seed.reminder(profile.user_id, channel="push", notification_type="grace_period_final")

        run_job(ReminderDispatchTask(dispatcher=dispatcher))

        recipient, _, data = senders[Channel.PUSH].sent[0]
        assert recipient == str(profile.user_id)
        assert data["title"] == "Final Grace Period Warning"

    def test_sms_uses_phone(self, seed, run_job, dispatcher, senders):
        profile = seed.profile(phone="+233555000111")
        seed.reminder(profile.user_id, channel="sms")

        run_job(ReminderDispatchTask(dispatcher=dispatcher))

        assert senders[Channel.SMS].sent[0][0] == "+233555000111"

    def test_missing_contact_marks_failed(self, session, seed, run_job, dispatcher):
        profile = seed.profile(email=None)
        reminder = seed.reminder(profile.user_id, channel="email")

        result = run_job(ReminderDispatchTask(dispatcher=dispatcher))

        assert result.failed == 1
        assert result.status == JobRunStatus.FAILED
        assert result.item_results[0].error_code == "MISSING_CONTACT"
        reminder = _reload(session, reminder)
        assert reminder.status == "failed"
        assert "email" in reminder.failure_reason

    def test_missing_profile_marks_failed(self, session, seed, run_job, dispatcher):
        reminder = seed.reminder(uuid4(), channel="push")

        result = run_job(ReminderDispatchTask(dispatcher=dispatcher))

        assert result.item_results[0].error_code == "MISSING_CONTACT"
        assert _reload(session, reminder).status == "failed"

    def test_sender_failure_marks_failed(self, session, seed, run_job, dispatcher, senders):
        senders[Channel.SMS].succeed = False
        profile = seed.profile()
        reminder = seed.reminder(profile.user_id, channel="sms")
        other = seed.reminder(profile.user_id, channel="email")

        result = run_job(ReminderDispatchTask(dispatcher=dispatcher))

        assert (result.succeeded, result.failed) == (1, 1)
        assert _reload(session, reminder).status == "failed"
        assert _reload(session, other).status == "sent"

    def test_unsupported_channel_marks_failed(self, session, seed, run_job, dispatcher):
        profile = seed.profile()
        reminder = seed.reminder(profile.user_id, channel="fax")

        result = run_job(ReminderDispatchTask(dispatcher=dispatcher))

        assert result.item_results[0].error_code == "UNSUPPORTED_CHANNEL"
        assert _reload(session, reminder).status == "failed"

    def test_batch_size_and_order(self, seed, run_job, dispatcher, senders, clock):
        profile = seed.profile()
        now = clock.now()
        late = seed.reminder(profile.user_id, scheduled_for=now - timedelta(minutes=1))
        early = seed.reminder(profile.user_id, scheduled_for=now - timedelta(hours=2))
        middle = seed.reminder(profile.user_id, scheduled_for=now - timedelta(minutes=30))

        result = run_job(ReminderDispatchTask(dispatcher=dispatcher, batch_size=2))

        assert [r.item_key for r in result.item_results] == [str(early.id), str(middle.id)]
        assert len(senders[Channel.EMAIL].sent) == 2
        assert late.status == "scheduled"

    def test_future_and_terminal_reminders_ignored(self, seed, run_job, dispatcher, clock):
        profile = seed.profile()
        seed.reminder(profile.user_id, scheduled_for=clock.now() + timedelta(hours=1))
        seed.reminder(profile.user_id, status="cancelled")
        seed.reminder(profile.user_id, status="sent")

        assert run_job(ReminderDispatchTask(dispatcher=dispatcher)).processed == 0

    def test_sent_reminder_not_redelivered(self, seed, run_job, dispatcher, senders):
        profile = seed.profile()
        seed.reminder(profile.user_id)

        run_job(ReminderDispatchTask(dispatcher=dispatcher))
        second = run_job(ReminderDispatchTask(dispatcher=dispatcher))

        assert second.processed == 0
        assert len(senders[Channel.EMAIL].sent) == 1
