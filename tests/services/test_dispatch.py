import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from linkreach.models import ActionQueueEntry, Campaign, CampaignStatus, QueueStatus
from linkreach.services.dispatch import STALE_RESET_RESULT, ActionScheduler, StaleCheckTracker
from linkreach.services.outcomes import mark_completed
from tests.factories import entries_for, make_active_campaign, make_due, make_prospect


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def scheduler():
    return ActionScheduler(tracker=StaleCheckTracker(interval_seconds=120))


def test_tracker_allows_one_check_per_interval():
    clock = FakeClock()
    tracker = StaleCheckTracker(interval_seconds=120, clock=clock)

    assert tracker.should_check(1) is True
    assert tracker.should_check(1) is False
    assert tracker.should_check(2) is True

    clock.now += 121
    assert tracker.should_check(1) is True

    tracker.forget(1)
    assert tracker.should_check(1) is True


@pytest.mark.asyncio
async def test_next_action_is_oldest_due_entry(user, scheduler):
    ana = await make_prospect(user, "Ana Lima")
    bruno = await make_prospect(user, "Bruno Costa")
    campaign = await make_active_campaign(user, [{"action_type": "visit"}], [ana, bruno])
    first, second = await entries_for(campaign)
    await ActionQueueEntry.filter(id=second.id).update(
        scheduled_for=datetime.now(timezone.utc) - timedelta(hours=1)
    )

    entry = await scheduler.next_action(user)

    assert entry.id == second.id
    assert entry.campaign.name == campaign.name
    assert entry.prospect.full_name == "Bruno Costa"


@pytest.mark.asyncio
async def test_future_and_foreign_entries_are_not_offered(user, other_user, scheduler):
    prospect = await make_prospect(user)
    await make_active_campaign(user, [{"action_type": "visit", "delay_days": 1}], [prospect])

    assert await scheduler.next_action(user) is None
    assert await scheduler.next_action(other_user) is None


@pytest.mark.asyncio
async def test_paused_campaign_is_skipped(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(user, [{"action_type": "visit"}], [prospect])
    await Campaign.filter(id=campaign.id).update(status=CampaignStatus.PAUSED)

    assert await scheduler.claim_next(user) is None

    await Campaign.filter(id=campaign.id).update(status=CampaignStatus.ACTIVE)
    assert await scheduler.claim_next(user) is not None


@pytest.mark.asyncio
async def test_excluded_campaigns_are_skipped(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(user, [{"action_type": "visit"}], [prospect])

    assert await scheduler.next_action(user, exclude_campaign_ids=[campaign.id]) is None


@pytest.mark.asyncio
async def test_concurrent_claims_have_one_winner(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(user, [{"action_type": "visit"}], [prospect])
    (entry,) = await entries_for(campaign)
    copy_a = await ActionQueueEntry.get(id=entry.id)
    copy_b = await ActionQueueEntry.get(id=entry.id)

    results = await asyncio.gather(scheduler.claim(copy_a), scheduler.claim(copy_b))

    assert sorted(results) == [False, True]
    stored = await ActionQueueEntry.get(id=entry.id)
    assert stored.status == QueueStatus.IN_PROGRESS
    assert stored.claimed_at is not None


@pytest.mark.asyncio
async def test_claimed_entry_is_not_offered_again(user, scheduler):
    prospect = await make_prospect(user)
    await make_active_campaign(user, [{"action_type": "visit"}], [prospect])

    assert await scheduler.claim_next(user) is not None
    assert await scheduler.claim_next(user) is None


@pytest.mark.asyncio
async def test_later_step_waits_for_earlier_step(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(
        user, [{"action_type": "visit"}, {"action_type": "follow", "delay_days": 1}], [prospect]
    )
    first, second = await entries_for(campaign)
    # simulate a retry pushing step 1 behind step 2
    await ActionQueueEntry.filter(id=first.id).update(scheduled_for=datetime.now(timezone.utc) + timedelta(hours=1))
    await make_due(second)

    assert await scheduler.next_action(user) is None

    await make_due(first)
    claimed = await scheduler.claim_next(user)
    assert claimed.id == first.id
    assert await scheduler.claim_next(user) is None

    await mark_completed(claimed)
    assert (await scheduler.claim_next(user)).id == second.id


@pytest.mark.asyncio
async def test_stale_claims_are_reclaimed(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(user, [{"action_type": "visit"}], [prospect])
    claimed = await scheduler.claim_next(user)
    await ActionQueueEntry.filter(id=claimed.id).update(
        claimed_at=datetime.now(timezone.utc) - timedelta(minutes=6)
    )

    reset = await scheduler.reset_stale_actions(user, force=True)

    assert reset == 1
    stored = await ActionQueueEntry.get(id=claimed.id)
    assert stored.status == QueueStatus.PENDING
    assert stored.result == STALE_RESET_RESULT
    assert stored.claimed_at is None
    assert (await scheduler.claim_next(user)).id == claimed.id
    assert await ActionQueueEntry.filter(campaign_id=campaign.id).count() == 1


@pytest.mark.asyncio
async def test_fresh_claims_are_left_alone(user, scheduler):
    prospect = await make_prospect(user)
    await make_active_campaign(user, [{"action_type": "visit"}], [prospect])
    claimed = await scheduler.claim_next(user)

    assert await scheduler.reset_stale_actions(user, force=True) == 0
    assert (await ActionQueueEntry.get(id=claimed.id)).status == QueueStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_stale_sweep_is_rate_limited(user):
    clock = FakeClock()
    scheduler = ActionScheduler(tracker=StaleCheckTracker(interval_seconds=120, clock=clock))
    prospect = await make_prospect(user)
    await make_active_campaign(user, [{"action_type": "visit"}], [prospect])

    claimed = await scheduler.claim_next(user)  # first sweep happens here
    await ActionQueueEntry.filter(id=claimed.id).update(
        claimed_at=datetime.now(timezone.utc) - timedelta(minutes=10)
    )

    assert await scheduler.reset_stale_actions(user) == 0
    clock.now += 121
    assert await scheduler.reset_stale_actions(user) == 1


@pytest.mark.asyncio
async def test_blocked_entries_beyond_batch_do_not_hide_due_work(user):
    scheduler = ActionScheduler(tracker=StaleCheckTracker(interval_seconds=120), candidate_batch=2)
    ana = await make_prospect(user, "Ana Lima")
    bruno = await make_prospect(user, "Bruno Costa")
    carla = await make_prospect(user, "Carla Dias")
    waiting = await make_active_campaign(
        user, [{"action_type": "visit"}, {"action_type": "follow", "delay_days": 1}], [ana, bruno]
    )
    other = await make_active_campaign(user, [{"action_type": "visit"}], [carla], name="Other")
    now = datetime.now(timezone.utc)
    # step 1 of each prospect was pushed back by a retry, step 2 is overdue
    await ActionQueueEntry.filter(campaign_id=waiting.id, step_order=1).update(scheduled_for=now + timedelta(minutes=5))
    await ActionQueueEntry.filter(campaign_id=waiting.id, step_order=2).update(scheduled_for=now - timedelta(hours=2))
    (free,) = await entries_for(other)
    await ActionQueueEntry.filter(id=free.id).update(scheduled_for=now - timedelta(hours=1))

    entry = await scheduler.next_action(user)

    assert entry is not None
    assert entry.id == free.id
