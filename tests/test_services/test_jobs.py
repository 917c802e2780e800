import datetime as dt

import pytest
from sqlalchemy import select

from src.core.config import settings
from src.db.models import Subscription
from src.repositories.reminder_log_repo import ReminderLogRepo
from src.services.jobs import run_advancement_job, run_reminder_job
from src.services.scheduler import ADVANCE_JOB_ID, REMINDER_JOB_ID, build_scheduler


async def _billing_dates(session_factory):
    async with session_factory() as session:
        rows = await session.execute(select(Subscription.name, Subscription.next_billing_date))
        return {name: value for name, value in rows.all()}


@pytest.mark.asyncio
async def test_advancement_then_reminder_end_to_end(test_db, session_factory, seed, push_sender):
    user = await seed.user(test_db)
    subscription = await seed.subscription(test_db, user, next_billing_date=seed.utc(2024, 1, 1))
    await seed.endpoint(test_db, user)

    advanced = await run_advancement_job(session_factory, today=dt.date(2024, 3, 15))

    assert advanced.scanned == 1
    assert advanced.advanced == 1
    dates = await _billing_dates(session_factory)
    assert dates["Netflix"].replace(tzinfo=None) == dt.datetime(2024, 4, 1)

    first = await run_reminder_job(session_factory, today=dt.date(2024, 4, 1), push_sender=push_sender)

    assert first.processed == 1
    assert first.delivered == 1
    assert len(push_sender.calls) == 1
    async with session_factory() as session:
        assert await ReminderLogRepo(session).count(subscription.id, "push") == 1

    second = await run_reminder_job(session_factory, today=dt.date(2024, 4, 1), push_sender=push_sender)

    assert second.delivered == 0
    assert second.skipped_already_sent == 1
    assert len(push_sender.calls) == 1


@pytest.mark.asyncio
async def test_advancement_clears_one_time_and_skips_future_dates(test_db, session_factory, seed):
    user = await seed.user(test_db)
    await seed.subscription(test_db, user, name="Course", billing_cycle="one_time", next_billing_date=seed.utc(2024, 2, 1))
    await seed.subscription(test_db, user, name="Future", next_billing_date=seed.utc(2024, 5, 1))
    await seed.subscription(test_db, user, name="Paused", next_billing_date=seed.utc(2024, 1, 1), is_active=False)

    result = await run_advancement_job(session_factory, today=dt.date(2024, 3, 15))

    assert result.scanned == 1
    assert result.cleared == 1
    dates = await _billing_dates(session_factory)
    assert dates["Course"] is None
    assert dates["Future"].replace(tzinfo=None) == dt.datetime(2024, 5, 1)
    assert dates["Paused"].replace(tzinfo=None) == dt.datetime(2024, 1, 1)


@pytest.mark.asyncio
async def test_advancement_failure_is_isolated(test_db, session_factory, seed, monkeypatch):
    user = await seed.user(test_db)
    await seed.subscription(test_db, user, name="Broken", next_billing_date=seed.utc(2024, 1, 1))
    await seed.subscription(test_db, user, name="Fine", billing_cycle="weekly", next_billing_date=seed.utc(2024, 3, 1))

    from src.services import jobs as jobs_module

    real_advance = jobs_module.advance

    def _advance(billing_cycle, next_billing_date, today, max_iterations=None):
        if billing_cycle == "monthly":
            raise RuntimeError("corrupt row")
        return real_advance(billing_cycle, next_billing_date, today, max_iterations)

    monkeypatch.setattr(jobs_module, "advance", _advance)

    result = await run_advancement_job(session_factory, today=dt.date(2024, 3, 15))

    assert result.failed == 1
    assert result.advanced == 1
    dates = await _billing_dates(session_factory)
    assert dates["Broken"].replace(tzinfo=None) == dt.datetime(2024, 1, 1)
    assert dates["Fine"].replace(tzinfo=None) == dt.datetime(2024, 3, 15)


@pytest.mark.asyncio
async def test_reminder_job_with_nothing_due(session_factory, push_sender):
    result = await run_reminder_job(session_factory, today=dt.date(2024, 4, 1), push_sender=push_sender)

    assert result.processed == 0
    assert push_sender.calls == []


@pytest.mark.asyncio
async def test_reminder_job_runs_email_when_enabled(
    test_db, session_factory, seed, push_sender, email_sender, monkeypatch
):
    monkeypatch.setattr(settings.email, "enabled", True)
    user = await seed.user(test_db, email="ada@example.com")
    await seed.subscription(test_db, user, next_billing_date=seed.utc(2024, 4, 2))

    result = await run_reminder_job(
        session_factory,
        today=dt.date(2024, 4, 1),
        push_sender=push_sender,
        email_sender=email_sender,
    )

    assert result.no_subscribers == 1
    assert result.email == {
        "sent": 1,
        "skipped_already_sent": 0,
        "skipped": 0,
        "missing_address": 0,
        "failed": 0,
    }
    assert "email_sent" not in result.as_dict()


def test_scheduler_registers_both_hourly_jobs():
    scheduler = build_scheduler()

    jobs = {job.id: job for job in scheduler.get_jobs()}

    assert set(jobs) == {REMINDER_JOB_ID, ADVANCE_JOB_ID}
    assert str(jobs[REMINDER_JOB_ID].trigger.fields[6]) == str(settings.scheduler.reminder_minute)
    assert str(jobs[ADVANCE_JOB_ID].trigger.fields[6]) == str(settings.scheduler.advance_minute)
    assert jobs[REMINDER_JOB_ID].max_instances == 1
    assert jobs[REMINDER_JOB_ID].coalesce is True
