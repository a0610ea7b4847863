from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from tortoise.transactions import in_transaction

from linkreach.models import (
    ActionQueueEntry,
    Campaign,
    CampaignProspect,
    CampaignStatus,
    CampaignStep,
    MessageTemplate,
    ProspectStatus,
    QueueStatus,
)
from linkreach.services.action_data import resolve_action_data, secondary_template_ids

log = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _template_lookup(steps: list[CampaignStep], owner_id: int) -> dict[int, MessageTemplate]:
    # only the campaign owner's templates; foreign ids resolve as missing
    ids: set[int] = set()
    for step in steps:
        if step.message_template_id is not None:  # type: ignore[attr-defined]
            ids.add(step.message_template_id)  # type: ignore[attr-defined]
        ids.update(secondary_template_ids(step))
    if not ids:
        return {}
    templates = await MessageTemplate.filter(id__in=list(ids), owner_id=owner_id)
    return {template.id: template for template in templates}


async def generate_actions_for_campaign(campaign: Campaign) -> int:
    """Queue one entry per (pending prospect, step) and return how many were created.

    Scheduling is cumulative from enrollment: each step's ``delay_days`` is
    added to the running clock before that step is queued. Everything runs in
    one transaction; a failure rolls back every entry and re-raises.
    """
    if campaign.status == CampaignStatus.COMPLETED:
        log.warning("generation_skipped_completed", campaign_id=campaign.id)
        return 0

    steps = await CampaignStep.filter(campaign_id=campaign.id).order_by("order", "id")
    if not steps:
        log.warning("generation_no_steps", campaign_id=campaign.id)
        return 0

    enrollments = (
        await CampaignProspect.filter(campaign_id=campaign.id, status=ProspectStatus.PENDING)
        .prefetch_related("prospect")
        .order_by("id")
    )
    if not enrollments:
        log.warning("generation_no_pending_prospects", campaign_id=campaign.id)
        return 0

    templates = await _template_lookup(steps, campaign.owner_id)  # type: ignore[attr-defined]
    started = _now()
    entries: list[ActionQueueEntry] = []

    for enrollment in enrollments:
        scheduled_for = started
        for step in steps:
            if step.delay_days > 0:
                scheduled_for = scheduled_for + timedelta(days=step.delay_days)
            entries.append(
                ActionQueueEntry(
                    owner_id=campaign.owner_id,  # type: ignore[attr-defined]
                    campaign_id=campaign.id,
                    campaign_prospect_id=enrollment.id,
                    prospect_id=enrollment.prospect_id,  # type: ignore[attr-defined]
                    step_id=step.id,
                    step_order=step.order,
                    action_type=step.action_type,
                    action_data=resolve_action_data(step, enrollment.prospect, templates),
                    scheduled_for=scheduled_for,
                    status=QueueStatus.PENDING,
                    retry_count=0,
                )
            )

    try:
        async with in_transaction():
            await ActionQueueEntry.bulk_create(entries)
            await CampaignProspect.filter(
                id__in=[enrollment.id for enrollment in enrollments],
                status=ProspectStatus.PENDING,
            ).update(status=ProspectStatus.IN_PROGRESS, total_steps=len(steps), last_action_at=started)
    except Exception as exc:
        log.error("generation_failed", campaign_id=campaign.id, error=str(exc))
        raise

    log.info(
        "actions_generated",
        campaign_id=campaign.id,
        actions=len(entries),
        prospects=len(enrollments),
        steps=len(steps),
    )
    return len(entries)
