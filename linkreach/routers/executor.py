from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from linkreach.auth.authenticate import authenticate
from linkreach.models import ActionQueueEntry, ActionType, Prospect, QueueStatus, User
from linkreach.services import queue_stats
from linkreach.services.dispatch import ActionScheduler
from linkreach.services.outcomes import mark_completed, mark_failed

router = APIRouter(prefix="/executor", tags=["executor"])
log = structlog.get_logger()

_scheduler = ActionScheduler()


def get_scheduler() -> ActionScheduler:
    return _scheduler


class ProspectBrief(BaseModel):
    id: int
    full_name: str
    company: str | None = None
    headline: str | None = None
    profile_url: str | None = None
    linkedin_id: str | None = None
    email: str | None = None
    connection_status: str | None = None


class ActionResponse(BaseModel):
    id: int
    campaign_id: int
    campaign_name: str
    action_type: str
    step_order: int
    action_data: dict[str, Any] = Field(default_factory=dict)
    scheduled_for: str | None = None
    retry_count: int = 0
    prospect: ProspectBrief


class NextActionResponse(BaseModel):
    has_action: bool
    action: ActionResponse | None = None
    message: str | None = None
    daily_limit: int
    today_count: int
    remaining_today: int


class ReportPayload(BaseModel):
    success: bool
    result: str | None = None
    error: str | None = None
    retry: bool = False


class ReportResponse(BaseModel):
    success: bool = True
    status: str
    retry_scheduled: bool = False
    prospect_finished: bool = False
    cancelled: int = 0
    campaign_completed: bool = False


class ActionStatsResponse(BaseModel):
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0
    today_completed: int = 0
    today_failed: int = 0
    daily_limit: int = 0
    remaining_today: int = 0


class ActiveCampaignResponse(BaseModel):
    id: int
    name: str
    status: str
    daily_limit: int
    total_prospects: int
    processed_prospects: int
    success_count: int
    failure_count: int
    pending_actions: int
    progress_percentage: float
    started_at: str | None = None


def _serialize_action(entry: ActionQueueEntry) -> ActionResponse:
    prospect = entry.prospect
    return ActionResponse(
        id=entry.id,  # type: ignore[arg-type]
        campaign_id=entry.campaign_id,  # type: ignore[attr-defined]
        campaign_name=entry.campaign.name,  # type: ignore[attr-defined]
        action_type=entry.action_type,  # type: ignore[arg-type]
        step_order=entry.step_order,  # type: ignore[arg-type]
        action_data=entry.action_data or {},  # type: ignore[arg-type]
        scheduled_for=entry.scheduled_for.isoformat() if entry.scheduled_for else None,
        retry_count=entry.retry_count,  # type: ignore[arg-type]
        prospect=ProspectBrief(
            id=prospect.id,  # type: ignore[attr-defined]
            full_name=prospect.full_name,  # type: ignore[attr-defined]
            company=prospect.company,  # type: ignore[attr-defined]
            headline=prospect.headline,  # type: ignore[attr-defined]
            profile_url=prospect.profile_url,  # type: ignore[attr-defined]
            linkedin_id=prospect.linkedin_id,  # type: ignore[attr-defined]
            email=prospect.email,  # type: ignore[attr-defined]
            connection_status=prospect.connection_status,  # type: ignore[attr-defined]
        ),
    )


@router.get("/actions/next", response_model=NextActionResponse)
async def next_action(
    user: User = Depends(authenticate),
    scheduler: ActionScheduler = Depends(get_scheduler),
):
    usage = await queue_stats.daily_usage(user)
    if usage["remaining_today"] <= 0:
        return NextActionResponse(has_action=False, message="Daily limit reached", **usage)

    exhausted = await queue_stats.campaigns_at_daily_limit(user)
    entry = await scheduler.claim_next(user, exhausted)
    if entry is None:
        return NextActionResponse(has_action=False, message="No pending actions", **usage)

    return NextActionResponse(has_action=True, action=_serialize_action(entry), **usage)


@router.post("/actions/{action_id}/report", response_model=ReportResponse)
async def report_action(action_id: int, payload: ReportPayload, user: User = Depends(authenticate)):
    entry = await ActionQueueEntry.get_or_none(id=action_id, owner_id=user.id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Action not found")
    if entry.status != QueueStatus.IN_PROGRESS:
        raise HTTPException(status_code=409, detail=f"Action is {entry.status.value}, not in progress")

    if payload.success:
        outcome = await mark_completed(entry, payload.result)
        if outcome.applied and ActionType.parse(entry.action_type) == ActionType.INVITE:
            await Prospect.filter(id=entry.prospect_id).update(connection_status="pending")  # type: ignore[attr-defined]
        status = QueueStatus.COMPLETED
    else:
        outcome = await mark_failed(entry, payload.error or payload.result or "", retry=payload.retry)
        status = QueueStatus.PENDING if outcome.retry_scheduled else QueueStatus.FAILED

    if not outcome.applied:
        raise HTTPException(status_code=409, detail="Action is no longer in progress")

    log.info("action_reported", user_id=user.id, entry_id=entry.id, success=payload.success, status=status.value)
    return ReportResponse(
        status=status.value,
        retry_scheduled=outcome.retry_scheduled,
        prospect_finished=outcome.prospect_finished,
        cancelled=outcome.cancelled,
        campaign_completed=outcome.campaign_completed,
    )


@router.get("/actions/stats", response_model=ActionStatsResponse)
async def action_stats(user: User = Depends(authenticate)):
    return ActionStatsResponse(**await queue_stats.action_stats(user))


@router.get("/campaigns/active", response_model=list[ActiveCampaignResponse])
async def active_campaigns(user: User = Depends(authenticate)):
    summaries = await queue_stats.active_campaign_summaries(user)
    return [
        ActiveCampaignResponse(**{**summary, "started_at": summary["started_at"].isoformat() if summary["started_at"] else None})
        for summary in summaries
    ]
