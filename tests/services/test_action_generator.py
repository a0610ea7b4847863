from datetime import datetime, timedelta, timezone

import pytest

from linkreach.models import ActionQueueEntry, CampaignProspect, CampaignStatus, ProspectStatus, QueueStatus
from linkreach.services.action_generator import generate_actions_for_campaign
from tests.factories import enrollment_for, entries_for, make_campaign, make_prospect, make_template


@pytest.mark.asyncio
async def test_one_entry_per_prospect_and_step(user):
    prospects = [await make_prospect(user, name) for name in ("Ana Lima", "Bruno Costa", "Carla Dias")]
    campaign = await make_campaign(
        user,
        steps=[
            {"action_type": "visit"},
            {"action_type": "follow", "delay_days": 1},
        ],
        prospects=prospects,
    )

    created = await generate_actions_for_campaign(campaign)

    assert created == 6
    assert await ActionQueueEntry.filter(campaign_id=campaign.id, status=QueueStatus.PENDING).count() == 6
    for prospect in prospects:
        enrollment = await enrollment_for(campaign, prospect)
        assert enrollment.status == ProspectStatus.IN_PROGRESS
        assert enrollment.total_steps == 2


@pytest.mark.asyncio
async def test_delays_accumulate(user):
    prospect = await make_prospect(user)
    template = await make_template(user, "Hi {firstName}")
    campaign = await make_campaign(
        user,
        steps=[
            {"action_type": "invite", "delay_days": 0, "message_template": template},
            {"action_type": "message", "delay_days": 2, "message_template": template},
            {"action_type": "message", "delay_days": 3},
        ],
        prospects=[prospect],
    )
    before = datetime.now(timezone.utc)

    await generate_actions_for_campaign(campaign)

    first, second, third = await entries_for(campaign)
    assert before - timedelta(seconds=5) <= first.scheduled_for <= before + timedelta(seconds=5)
    assert second.scheduled_for - first.scheduled_for == timedelta(days=2)
    assert third.scheduled_for - first.scheduled_for == timedelta(days=5)
    assert [e.step_order for e in (first, second, third)] == [1, 2, 3]
    assert first.action_data["message"] == "Hi Ana"


@pytest.mark.asyncio
async def test_only_pending_enrollments_are_queued(user):
    done = await make_prospect(user, "Done Person")
    fresh = await make_prospect(user, "Fresh Person")
    campaign = await make_campaign(user, steps=[{"action_type": "visit"}], prospects=[done, fresh])
    await CampaignProspect.filter(campaign_id=campaign.id, prospect_id=done.id).update(
        status=ProspectStatus.COMPLETED
    )

    assert await generate_actions_for_campaign(campaign) == 1
    assert [e.prospect_id for e in await entries_for(campaign)] == [fresh.id]


@pytest.mark.asyncio
async def test_nothing_to_generate(user):
    prospect = await make_prospect(user)
    no_steps = await make_campaign(user, prospects=[prospect])
    no_prospects = await make_campaign(user, name="Empty", steps=[{"action_type": "visit"}])
    finished = await make_campaign(
        user, name="Finished", steps=[{"action_type": "visit"}], prospects=[prospect], status=CampaignStatus.COMPLETED
    )

    assert await generate_actions_for_campaign(no_steps) == 0
    assert await generate_actions_for_campaign(no_prospects) == 0
    assert await generate_actions_for_campaign(finished) == 0
    assert await ActionQueueEntry.all().count() == 0


@pytest.mark.asyncio
async def test_failure_rolls_back_everything(user, monkeypatch):
    prospects = [await make_prospect(user, name) for name in ("Ana Lima", "Bruno Costa")]
    campaign = await make_campaign(user, steps=[{"action_type": "visit"}], prospects=prospects)

    real_filter = CampaignProspect.filter

    class _Boom:
        async def update(self, **kwargs):
            raise RuntimeError("db went away")

    def _filter(*args, **kwargs):
        if "id__in" in kwargs:
            return _Boom()
        return real_filter(*args, **kwargs)

    monkeypatch.setattr(CampaignProspect, "filter", _filter)

    with pytest.raises(RuntimeError):
        await generate_actions_for_campaign(campaign)

    monkeypatch.undo()
    assert await ActionQueueEntry.filter(campaign_id=campaign.id).count() == 0
    assert await CampaignProspect.filter(campaign_id=campaign.id, status=ProspectStatus.PENDING).count() == 2


@pytest.mark.asyncio
async def test_action_data_is_frozen(user):
    prospect = await make_prospect(user)
    template = await make_template(user, "Hello {firstName}")
    campaign = await make_campaign(
        user, steps=[{"action_type": "message", "message_template": template}], prospects=[prospect]
    )
    await generate_actions_for_campaign(campaign)

    template.content = "Changed"
    await template.save()

    (entry,) = await entries_for(campaign)
    assert entry.action_data["message"] == "Hello Ana"


@pytest.mark.asyncio
async def test_foreign_templates_are_never_rendered(user, other_user):
    prospect = await make_prospect(user)
    mine = await make_template(user, "Thanks, {firstName}")
    foreign = await make_template(other_user, "Private text of another account")
    campaign = await make_campaign(
        user,
        steps=[
            {
                "action_type": "connect_message",
                "message_template": mine,
                "config": {"invite_template_id": foreign.id},
            },
            {"action_type": "email_message", "config": {"fallback_template_id": foreign.id}},
        ],
        prospects=[prospect],
    )

    await generate_actions_for_campaign(campaign)

    first, second = await entries_for(campaign)
    assert first.action_data["connected_message"] == "Thanks, Ana"
    assert "invite_message" not in first.action_data
    assert "fallback_message" not in second.action_data
