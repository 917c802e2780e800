import datetime as dt
from uuid import uuid4

import pytest

from src.core.config import settings
from src.schemas.enums import ReminderKind
from src.schemas.reminder import ReminderRecord
from src.services.reminders import (
    build_email_content,
    build_notification_text,
    classify,
    collect_due_reminders,
    collect_due_reminders_for_user,
    format_amount,
    format_billing_date,
    format_reminder_message,
    with_email_address,
)


UTC = dt.timezone.utc
TODAY = dt.date(2024, 4, 1)


def _record(**overrides) -> ReminderRecord:
    values = dict(
        kind=ReminderKind.TODAY,
        subscription_id=uuid4(),
        subscription_name="Netflix",
        owner_id=uuid4(),
        owner_name="Ada",
        owner_email="ada@example.com",
        amount="15.99",
        currency="USD",
        billing_date=TODAY,
        message="msg",
    )
    values.update(overrides)
    return ReminderRecord(**values)


class TestClassify:
    def test_today_and_tomorrow(self):
        assert classify(dt.datetime(2024, 4, 1, 15, tzinfo=UTC), TODAY) is ReminderKind.TODAY
        assert classify(dt.datetime(2024, 4, 2, tzinfo=UTC), TODAY) is ReminderKind.TOMORROW

    def test_other_days_and_missing_dates(self):
        assert classify(dt.datetime(2024, 4, 3, tzinfo=UTC), TODAY) is None
        assert classify(dt.datetime(2024, 3, 31, 23, 59, tzinfo=UTC), TODAY) is None
        assert classify(None, TODAY) is None

    def test_naive_values_are_read_as_utc(self):
        assert classify(dt.datetime(2024, 4, 2, 0, 30), TODAY) is ReminderKind.TOMORROW

    def test_truncates_in_the_reminder_zone(self, monkeypatch):
        monkeypatch.setattr(settings.reminders, "timezone", "America/New_York")

        # 02:00 UTC on Apr 2 is still Apr 1 in New York
        assert classify(dt.datetime(2024, 4, 2, 2, tzinfo=UTC), TODAY) is ReminderKind.TODAY


class TestFormatting:
    def test_amounts(self):
        assert format_amount("15.99", "USD") == "$15.99"
        assert format_amount("1299", "eur") == "€1,299.00"
        assert format_amount("1500", "JPY") == "¥1,500"
        assert format_amount("49", "SEK") == "SEK 49.00"
        assert format_amount("not a number", "USD") == "$0.00"

    def test_billing_date(self):
        assert format_billing_date(dt.date(2024, 4, 1)) == "Apr 1, 2024"

    def test_messages(self):
        assert (
            format_reminder_message("Netflix", "15.99", "USD", TODAY, ReminderKind.TODAY)
            == "💰 Netflix billing is due today (Apr 1, 2024) - $15.99"
        )
        assert (
            format_reminder_message("Netflix", "15.99", "USD", dt.date(2024, 4, 2), ReminderKind.TOMORROW)
            == "⏰ Netflix billing is due tomorrow (Apr 2, 2024) - $15.99"
        )

    def test_notification_text(self):
        title, body = build_notification_text(_record())

        assert title == "💰 Netflix billing due today!"
        assert body == "Netflix billing is due today (Apr 1, 2024) - $15.99"

    def test_email_content(self):
        record = _record(kind=ReminderKind.TOMORROW, owner_name="Unknown")

        content = build_email_content(record, "https://app.example.com/")

        assert content.subject == "Billing Tomorrow: Netflix - $15.99"
        assert content.text.startswith("Hi there,")
        assert f"https://app.example.com/subscriptions/{record.subscription_id}" in content.html

    def test_record_tag_and_url(self):
        record = _record()

        assert record.tag == f"reminder-{record.subscription_id}-today"
        assert record.url == f"/subscriptions/{record.subscription_id}"
        dumped = record.model_dump(by_alias=True, mode="json")
        assert dumped["reminderType"] == "today"
        assert dumped["subscriptionId"] == str(record.subscription_id)

    def test_with_email_address(self):
        records = [_record(), _record(owner_email=None)]

        assert with_email_address(records) == records[:1]


@pytest.mark.asyncio
async def test_collect_due_reminders_classifies_and_filters(test_db, seed):
    user = await seed.user(test_db, name="Grace")
    today_sub = await seed.subscription(test_db, user, name="Netflix", next_billing_date=seed.utc(2024, 4, 1, 9))
    tomorrow_sub = await seed.subscription(test_db, user, name="Spotify", next_billing_date=seed.utc(2024, 4, 2))
    await seed.subscription(test_db, user, name="Later", next_billing_date=seed.utc(2024, 4, 3))
    await seed.subscription(test_db, user, name="Paused", next_billing_date=seed.utc(2024, 4, 1), is_active=False)
    await seed.subscription(test_db, user, name="Undated")

    records = await collect_due_reminders(test_db, TODAY)

    by_id = {record.subscription_id: record for record in records}
    assert set(by_id) == {today_sub.id, tomorrow_sub.id}
    assert by_id[today_sub.id].kind is ReminderKind.TODAY
    assert by_id[tomorrow_sub.id].kind is ReminderKind.TOMORROW
    assert by_id[today_sub.id].owner_name == "Grace"
    assert by_id[today_sub.id].amount == "15.99"
    assert by_id[today_sub.id].billing_date == TODAY
    assert by_id[today_sub.id].message == "💰 Netflix billing is due today (Apr 1, 2024) - $15.99"


@pytest.mark.asyncio
async def test_collect_for_user_scopes_to_owner(test_db, seed):
    alice = await seed.user(test_db, name="Alice")
    bob = await seed.user(test_db, name="Bob")
    mine = await seed.subscription(test_db, alice, next_billing_date=seed.utc(2024, 4, 1))
    await seed.subscription(test_db, bob, next_billing_date=seed.utc(2024, 4, 1))

    records = await collect_due_reminders_for_user(test_db, alice.id, TODAY)

    assert [record.subscription_id for record in records] == [mine.id]


@pytest.mark.asyncio
async def test_missing_owner_falls_back_to_unknown(test_db, seed):
    user = await seed.user(test_db)
    subscription = await seed.subscription(test_db, user, next_billing_date=seed.utc(2024, 4, 2))
    await test_db.delete(user)
    await test_db.commit()

    records = await collect_due_reminders(test_db, TODAY)

    # SQLite does not enforce the foreign key here, so the subscription outlives its owner
    assert len(records) == 1
    assert records[0].subscription_id == subscription.id
    assert records[0].owner_name == "Unknown"
    assert records[0].owner_email is None
