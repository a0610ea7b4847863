from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from linkreach.models import ActionQueueEntry, Campaign, CampaignStatus, QueueStatus, User


def start_of_today() -> datetime:
    now = datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


async def today_count(user: User, status: QueueStatus = QueueStatus.COMPLETED) -> int:
    return await ActionQueueEntry.filter(
        owner_id=user.id,
        status=status,
        executed_at__gte=start_of_today(),
    ).count()


async def daily_usage(user: User) -> dict[str, int]:
    limit = user.daily_action_limit
    used = await today_count(user)
    return {
        "daily_limit": limit,
        "today_count": used,
        "remaining_today": max(limit - used, 0),
    }


async def campaigns_at_daily_limit(user: User) -> list[int]:
    """Active campaigns whose own ``daily_limit`` is used up for today."""
    since = start_of_today()
    exhausted: list[int] = []
    for campaign in await Campaign.filter(owner_id=user.id, status=CampaignStatus.ACTIVE):
        if not campaign.daily_limit:
            continue
        done = await ActionQueueEntry.filter(
            campaign_id=campaign.id,
            status=QueueStatus.COMPLETED,
            executed_at__gte=since,
        ).count()
        if done >= campaign.daily_limit:
            exhausted.append(campaign.id)
    return exhausted


async def action_stats(user: User) -> dict[str, int]:
    stats: dict[str, int] = {}
    for status in QueueStatus:
        stats[status.value] = await ActionQueueEntry.filter(owner_id=user.id, status=status).count()
    stats["today_completed"] = await today_count(user, QueueStatus.COMPLETED)
    stats["today_failed"] = await today_count(user, QueueStatus.FAILED)
    stats["daily_limit"] = user.daily_action_limit
    stats["remaining_today"] = max(user.daily_action_limit - stats["today_completed"], 0)
    return stats


async def active_campaign_summaries(user: User) -> list[dict[str, Any]]:
    campaigns = await Campaign.filter(owner_id=user.id, status=CampaignStatus.ACTIVE).order_by("-started_at", "id")
    out: list[dict[str, Any]] = []
    for campaign in campaigns:
        pending = await ActionQueueEntry.filter(campaign_id=campaign.id, status=QueueStatus.PENDING).count()
        out.append(
            {
                "id": campaign.id,
                "name": campaign.name,
                "status": campaign.status.value,
                "daily_limit": campaign.daily_limit,
                "total_prospects": campaign.total_prospects,
                "processed_prospects": campaign.processed_prospects,
                "success_count": campaign.success_count,
                "failure_count": campaign.failure_count,
                "pending_actions": pending,
                "progress_percentage": campaign.progress_percentage(),
                "started_at": campaign.started_at,
            }
        )
    return out
