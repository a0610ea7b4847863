from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from linkreach.config import Config
from linkreach.models import (
    ActionQueueEntry,
    Campaign,
    CampaignProspect,
    CampaignStep,
    ProspectStatus,
    QueueStatus,
)
from linkreach.services.completion import check_campaign_completion

log = structlog.get_logger()

CANCELLED_RESULT = "cancelled: previous action failed"
OPEN_PROSPECT_STATUSES = [ProspectStatus.PENDING, ProspectStatus.IN_PROGRESS]


@dataclass
class OutcomeResult:
    applied: bool
    retry_scheduled: bool = False
    prospect_finished: bool = False
    cancelled: int = 0
    campaign_completed: bool = False


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _total_steps(enrollment: CampaignProspect) -> int:
    if enrollment.total_steps:
        return enrollment.total_steps
    return await CampaignStep.filter(campaign_id=enrollment.campaign_id).count()  # type: ignore[attr-defined]


async def mark_completed(entry: ActionQueueEntry, result: str | None = None) -> OutcomeResult:
    """Record a successful execution and advance the prospect's step cursor."""
    now = _now()
    async with in_transaction():
        updated = await ActionQueueEntry.filter(id=entry.id, status=QueueStatus.IN_PROGRESS).update(
            status=QueueStatus.COMPLETED,
            executed_at=now,
            result=result,
        )
        if not updated:
            log.warning("complete_rejected", entry_id=entry.id)
            return OutcomeResult(applied=False)

        outcome = OutcomeResult(applied=True)
        enrollment_id = entry.campaign_prospect_id  # type: ignore[attr-defined]
        await CampaignProspect.filter(id=enrollment_id).update(
            current_step=F("current_step") + 1,
            last_action_at=now,
        )
        enrollment = await CampaignProspect.get_or_none(id=enrollment_id)
        if enrollment is not None and enrollment.current_step >= await _total_steps(enrollment):
            finished = await CampaignProspect.filter(
                id=enrollment_id,
                status__in=OPEN_PROSPECT_STATUSES,
            ).update(status=ProspectStatus.COMPLETED, processed_at=now)
            if finished:
                await Campaign.filter(id=entry.campaign_id).update(  # type: ignore[attr-defined]
                    processed_prospects=F("processed_prospects") + 1,
                    success_count=F("success_count") + 1,
                )
                outcome.prospect_finished = True

        outcome.campaign_completed = await check_campaign_completion(entry.campaign_id)  # type: ignore[attr-defined]

    entry.status = QueueStatus.COMPLETED  # type: ignore[assignment]
    entry.executed_at = now  # type: ignore[assignment]
    entry.result = result  # type: ignore[assignment]
    log.info(
        "action_completed",
        entry_id=entry.id,
        campaign_id=entry.campaign_id,  # type: ignore[attr-defined]
        prospect_finished=outcome.prospect_finished,
    )
    return outcome


async def _cancel_remaining(entry: ActionQueueEntry, now: datetime) -> int:
    return await (
        ActionQueueEntry.filter(
            campaign_id=entry.campaign_id,  # type: ignore[attr-defined]
            campaign_prospect_id=entry.campaign_prospect_id,  # type: ignore[attr-defined]
            status=QueueStatus.PENDING,
        )
        .exclude(id=entry.id)
        .update(status=QueueStatus.FAILED, result=CANCELLED_RESULT, executed_at=now)
    )


async def mark_failed(entry: ActionQueueEntry, error: str, retry: bool = False) -> OutcomeResult:
    """Record a failed execution.

    With ``retry`` and fewer than ``MAX_RETRIES`` previous retries the entry
    goes back to pending after a fixed delay. Anything else is terminal: the
    prospect fails and its remaining pending entries are cancelled.
    """
    now = _now()
    error = error or "Unknown error"
    async with in_transaction():
        current = await ActionQueueEntry.get_or_none(id=entry.id)
        if current is None or current.status != QueueStatus.IN_PROGRESS:
            log.warning("fail_rejected", entry_id=entry.id)
            return OutcomeResult(applied=False)

        if retry and current.retry_count < Config.MAX_RETRIES:
            attempt = current.retry_count + 1
            scheduled_for = now + timedelta(minutes=Config.RETRY_DELAY_MINUTES)
            updated = await ActionQueueEntry.filter(
                id=entry.id,
                status=QueueStatus.IN_PROGRESS,
                retry_count=current.retry_count,
            ).update(
                status=QueueStatus.PENDING,
                retry_count=attempt,
                scheduled_for=scheduled_for,
                result=f"Retry {attempt}: {error}",
                claimed_at=None,
            )
            if not updated:
                return OutcomeResult(applied=False)
            log.info("action_retry_scheduled", entry_id=entry.id, attempt=attempt, error=error)
            return OutcomeResult(applied=True, retry_scheduled=True)

        updated = await ActionQueueEntry.filter(id=entry.id, status=QueueStatus.IN_PROGRESS).update(
            status=QueueStatus.FAILED,
            executed_at=now,
            result=error,
        )
        if not updated:
            return OutcomeResult(applied=False)

        outcome = OutcomeResult(applied=True)
        failed = await CampaignProspect.filter(
            id=current.campaign_prospect_id,  # type: ignore[attr-defined]
            status__in=OPEN_PROSPECT_STATUSES,
        ).update(status=ProspectStatus.FAILED, failure_reason=error, processed_at=now, last_action_at=now)
        if failed:
            await Campaign.filter(id=current.campaign_id).update(  # type: ignore[attr-defined]
                processed_prospects=F("processed_prospects") + 1,
                failure_count=F("failure_count") + 1,
            )
            outcome.prospect_finished = True

        outcome.cancelled = await _cancel_remaining(current, now)
        outcome.campaign_completed = await check_campaign_completion(current.campaign_id)  # type: ignore[attr-defined]

    log.info(
        "action_failed",
        entry_id=entry.id,
        campaign_id=entry.campaign_id,  # type: ignore[attr-defined]
        cancelled=outcome.cancelled,
        error=error,
    )
    return outcome
