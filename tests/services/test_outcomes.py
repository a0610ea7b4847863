from datetime import datetime, timezone

import pytest

from linkreach.models import ActionQueueEntry, Campaign, CampaignStatus, ProspectStatus, QueueStatus
from linkreach.services.dispatch import ActionScheduler
from linkreach.services.outcomes import CANCELLED_RESULT, mark_completed, mark_failed
from tests.factories import enrollment_for, entries_for, make_active_campaign, make_due, make_prospect, make_template


@pytest.fixture
def scheduler():
    return ActionScheduler()


@pytest.mark.asyncio
async def test_two_step_campaign_runs_to_completion(user, scheduler):
    prospect = await make_prospect(user)
    template = await make_template(user, "Hi {firstName}")
    campaign = await make_active_campaign(
        user,
        [
            {"action_type": "invite", "delay_days": 0, "message_template": template},
            {"action_type": "message", "delay_days": 2, "message_template": template},
        ],
        [prospect],
    )

    first = await scheduler.claim_next(user)
    outcome = await mark_completed(first, "sent")

    assert outcome.applied and not outcome.prospect_finished
    enrollment = await enrollment_for(campaign, prospect)
    assert enrollment.current_step == 1
    assert enrollment.status == ProspectStatus.IN_PROGRESS
    assert (await Campaign.get(id=campaign.id)).status == CampaignStatus.ACTIVE

    _, second = await entries_for(campaign)
    await make_due(second)
    second = await scheduler.claim_next(user)
    outcome = await mark_completed(second)

    assert outcome.prospect_finished and outcome.campaign_completed
    enrollment = await enrollment_for(campaign, prospect)
    assert enrollment.current_step == 2
    assert enrollment.status == ProspectStatus.COMPLETED
    stored = await Campaign.get(id=campaign.id)
    assert stored.status == CampaignStatus.COMPLETED
    assert stored.completed_at is not None
    assert stored.processed_prospects == 1
    assert stored.success_count == 1


@pytest.mark.asyncio
async def test_retry_until_limit_then_terminal(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(user, [{"action_type": "visit"}], [prospect])

    for attempt in (1, 2, 3):
        entry = await scheduler.claim_next(user)
        outcome = await mark_failed(entry, "page timeout", retry=True)
        assert outcome.retry_scheduled
        stored = await ActionQueueEntry.get(id=entry.id)
        assert stored.status == QueueStatus.PENDING
        assert stored.retry_count == attempt
        assert stored.result == f"Retry {attempt}: page timeout"
        assert stored.claimed_at is None
        assert stored.scheduled_for > datetime.now(timezone.utc)
        await make_due(stored)

    entry = await scheduler.claim_next(user)
    outcome = await mark_failed(entry, "page timeout", retry=True)

    assert outcome.applied and not outcome.retry_scheduled
    stored = await ActionQueueEntry.get(id=entry.id)
    assert stored.status == QueueStatus.FAILED
    assert stored.retry_count == 3
    enrollment = await enrollment_for(campaign, prospect)
    assert enrollment.status == ProspectStatus.FAILED
    assert enrollment.failure_reason == "page timeout"
    assert (await Campaign.get(id=campaign.id)).failure_count == 1


@pytest.mark.asyncio
async def test_terminal_failure_cancels_only_that_prospect(user, scheduler):
    ana = await make_prospect(user, "Ana Lima")
    bruno = await make_prospect(user, "Bruno Costa")
    campaign = await make_active_campaign(
        user, [{"action_type": "visit"}, {"action_type": "message"}, {"action_type": "follow"}], [ana, bruno]
    )

    entry = await scheduler.claim_next(user)
    assert entry.prospect_id == ana.id
    outcome = await mark_failed(entry, "profile not found")

    assert outcome.cancelled == 2
    ana_entries = await ActionQueueEntry.filter(campaign_id=campaign.id, prospect_id=ana.id).order_by("step_order")
    assert [e.status for e in ana_entries] == [QueueStatus.FAILED] * 3
    assert [e.result for e in ana_entries[1:]] == [CANCELLED_RESULT, CANCELLED_RESULT]
    assert await ActionQueueEntry.filter(
        campaign_id=campaign.id, prospect_id=bruno.id, status=QueueStatus.PENDING
    ).count() == 3
    assert (await Campaign.get(id=campaign.id)).status == CampaignStatus.ACTIVE


@pytest.mark.asyncio
async def test_last_failure_completes_campaign(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(user, [{"action_type": "visit"}, {"action_type": "follow"}], [prospect])

    entry = await scheduler.claim_next(user)
    outcome = await mark_failed(entry, "blocked")

    assert outcome.campaign_completed
    stored = await Campaign.get(id=campaign.id)
    assert stored.status == CampaignStatus.COMPLETED
    assert stored.processed_prospects == 1
    assert stored.success_count == 0


@pytest.mark.asyncio
async def test_outcome_for_entry_not_in_progress_is_rejected(user, scheduler):
    prospect = await make_prospect(user)
    campaign = await make_active_campaign(user, [{"action_type": "visit"}], [prospect])
    (pending,) = await entries_for(campaign)

    assert (await mark_completed(pending)).applied is False
    assert (await mark_failed(pending, "nope")).applied is False

    claimed = await scheduler.claim_next(user)
    assert (await mark_completed(claimed)).applied is True
    assert (await mark_completed(claimed)).applied is False
    assert (await Campaign.get(id=campaign.id)).success_count == 1


@pytest.mark.asyncio
async def test_missing_error_message(user, scheduler):
    prospect = await make_prospect(user)
    await make_active_campaign(user, [{"action_type": "visit"}], [prospect])

    entry = await scheduler.claim_next(user)
    await mark_failed(entry, "")

    assert (await ActionQueueEntry.get(id=entry.id)).result == "Unknown error"
