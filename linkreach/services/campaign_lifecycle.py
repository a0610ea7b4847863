from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

import structlog
from pydantic import BaseModel
from tortoise.transactions import in_transaction

from linkreach.models import (
    ActionQueueEntry,
    Campaign,
    CampaignProspect,
    CampaignStatus,
    CampaignStep,
    Prospect,
    ProspectStatus,
    QueueStatus,
)
from linkreach.services.action_generator import generate_actions_for_campaign

log = structlog.get_logger()

EDITABLE_STATUSES = {CampaignStatus.DRAFT, CampaignStatus.PAUSED}
DELETABLE_STATUSES = {CampaignStatus.DRAFT, CampaignStatus.COMPLETED}


class StartResult(BaseModel):
    success: bool
    message: str
    actions_created: int = 0
    resumed: bool = False


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _failure(message: str) -> StartResult:
    return StartResult(success=False, message=message, actions_created=0)


async def refresh_total_prospects(campaign: Campaign) -> int:
    total = await CampaignProspect.filter(campaign_id=campaign.id).count()
    await Campaign.filter(id=campaign.id).update(total_prospects=total)
    campaign.total_prospects = total  # type: ignore[assignment]
    return total


async def add_prospects(campaign: Campaign, prospect_ids: Iterable[int]) -> int:
    """Enroll the owner's prospects that are not yet part of the campaign."""
    wanted = {int(pid) for pid in prospect_ids}
    if not wanted:
        return 0

    owned = set(
        await Prospect.filter(id__in=list(wanted), owner_id=campaign.owner_id).values_list("id", flat=True)  # type: ignore[attr-defined]
    )
    existing = set(
        await CampaignProspect.filter(campaign_id=campaign.id, prospect_id__in=list(owned)).values_list(
            "prospect_id", flat=True
        )
    )
    new_ids = sorted(owned - existing)
    if not new_ids:
        return 0

    await CampaignProspect.bulk_create(
        [
            CampaignProspect(campaign_id=campaign.id, prospect_id=pid, status=ProspectStatus.PENDING, current_step=0)
            for pid in new_ids
        ]
    )
    await refresh_total_prospects(campaign)
    log.info("prospects_added", campaign_id=campaign.id, added=len(new_ids))
    return len(new_ids)


async def remove_prospects(campaign: Campaign, prospect_ids: Iterable[int]) -> int:
    ids = [int(pid) for pid in prospect_ids]
    if not ids:
        return 0
    removed = await CampaignProspect.filter(
        campaign_id=campaign.id,
        prospect_id__in=ids,
        status=ProspectStatus.PENDING,
    ).delete()
    await refresh_total_prospects(campaign)
    return removed


async def _tagged_prospect_ids(campaign: Campaign) -> list[int]:
    return await (
        Prospect.filter(owner_id=campaign.owner_id, tags__id=campaign.tag_id)  # type: ignore[attr-defined]
        .distinct()
        .values_list("id", flat=True)
    )


async def start_campaign(campaign: Campaign) -> StartResult:
    """Start a draft campaign or resume a paused one.

    A fresh start enrolls tag matches, activates the campaign and generates
    the queue. A resume only re-activates; queued entries are reused as-is.
    """
    if campaign.status not in EDITABLE_STATUSES:
        return _failure("Campaign must be in draft or paused status to start")

    if not await CampaignStep.filter(campaign_id=campaign.id).exists():
        return _failure("Campaign must have at least one step")

    previous_status = campaign.status
    resuming = previous_status == CampaignStatus.PAUSED

    if resuming:
        active = await CampaignProspect.filter(
            campaign_id=campaign.id,
            status__in=[ProspectStatus.PENDING, ProspectStatus.IN_PROGRESS],
        ).count()
        if active == 0:
            return _failure("No active prospects to resume. All prospects are completed or failed.")
    else:
        if campaign.tag_id is not None:  # type: ignore[attr-defined]
            tagged = await _tagged_prospect_ids(campaign)
            if not tagged:
                return _failure("No prospects found with the selected tag")
            await add_prospects(campaign, tagged)

        pending = await CampaignProspect.filter(campaign_id=campaign.id, status=ProspectStatus.PENDING).count()
        if pending == 0:
            return _failure("Campaign must have at least one pending prospect")

    activated = await Campaign.filter(id=campaign.id, status=previous_status).update(
        status=CampaignStatus.ACTIVE,
        started_at=campaign.started_at or _now(),
    )
    if not activated:
        return _failure("Failed to activate campaign")
    await campaign.refresh_from_db()

    if resuming:
        pending_actions = await ActionQueueEntry.filter(
            campaign_id=campaign.id, status=QueueStatus.PENDING
        ).count()
        log.info("campaign_resumed", campaign_id=campaign.id, pending_actions=pending_actions)
        return StartResult(
            success=True,
            message=f"Campaign resumed successfully. {pending_actions} pending actions.",
            actions_created=pending_actions,
            resumed=True,
        )

    try:
        created = await generate_actions_for_campaign(campaign)
    except Exception as exc:
        await Campaign.filter(id=campaign.id).update(status=previous_status)
        campaign.status = previous_status  # type: ignore[assignment]
        log.error("campaign_start_failed", campaign_id=campaign.id, error=str(exc))
        return _failure(f"Failed to generate actions: {exc}")

    log.info("campaign_started", campaign_id=campaign.id, actions=created)
    return StartResult(
        success=True,
        message=f"Campaign started successfully. {created} actions scheduled.",
        actions_created=created,
    )


async def pause_campaign(campaign: Campaign) -> bool:
    paused = await Campaign.filter(id=campaign.id, status=CampaignStatus.ACTIVE).update(
        status=CampaignStatus.PAUSED
    )
    if paused:
        campaign.status = CampaignStatus.PAUSED  # type: ignore[assignment]
        log.info("campaign_paused", campaign_id=campaign.id)
    return bool(paused)


async def replace_steps(campaign: Campaign, steps: list[dict[str, Any]]) -> list[CampaignStep]:
    """Swap the whole step list; orders are renumbered 1..n in the given order.

    Already queued entries keep their frozen payloads and step order.
    """
    if campaign.status not in EDITABLE_STATUSES:
        raise ValueError("Steps can only be replaced while the campaign is draft or paused")

    async with in_transaction():
        await CampaignStep.filter(campaign_id=campaign.id).delete()
        created: list[CampaignStep] = []
        for idx, step in enumerate(steps, start=1):
            created.append(
                await CampaignStep.create(
                    campaign_id=campaign.id,
                    order=idx,
                    action_type=step["action_type"],
                    delay_days=max(int(step.get("delay_days") or 0), 0),
                    message_template_id=step.get("message_template_id"),
                    config=step.get("config") or {},
                )
            )
    return created


async def delete_campaign(campaign: Campaign) -> bool:
    if campaign.status not in DELETABLE_STATUSES:
        return False
    await campaign.delete()
    log.info("campaign_deleted", campaign_id=campaign.id)
    return True


async def campaign_stats(owner_id: int) -> dict[str, int]:
    stats = {"total": await Campaign.filter(owner_id=owner_id).count()}
    for status in CampaignStatus:
        stats[status.value] = await Campaign.filter(owner_id=owner_id, status=status).count()
    return stats
