from __future__ import annotations

from datetime import datetime, timezone

import structlog

from linkreach.models import OPEN_QUEUE_STATUSES, ActionQueueEntry, Campaign, CampaignStatus

log = structlog.get_logger()


async def check_campaign_completion(campaign_id: int) -> bool:
    """Complete an active campaign once none of its entries are pending or in progress.

    Safe to call after every outcome; returns True only for the call that
    performed the transition.
    """
    remaining = await ActionQueueEntry.filter(
        campaign_id=campaign_id,
        status__in=list(OPEN_QUEUE_STATUSES),
    ).count()
    if remaining:
        return False

    updated = await Campaign.filter(id=campaign_id, status=CampaignStatus.ACTIVE).update(
        status=CampaignStatus.COMPLETED,
        completed_at=datetime.now(timezone.utc),
    )
    if updated:
        log.info("campaign_completed", campaign_id=campaign_id)
    return bool(updated)
