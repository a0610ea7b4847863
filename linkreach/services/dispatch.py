from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

import structlog

from linkreach.config import Config
from linkreach.models import (
    OPEN_QUEUE_STATUSES,
    ActionQueueEntry,
    CampaignStatus,
    QueueStatus,
    User,
)

STALE_RESET_RESULT = "reset: stuck in progress"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StaleCheckTracker:
    """Remembers when each account last ran a stale-claim sweep.

    ``should_check`` answers True at most once per ``interval_seconds`` for a
    given key. Process-local; swap in a shared cache when several API workers
    serve the same accounts.
    """

    def __init__(self, interval_seconds: float | None = None, clock: Callable[[], float] = time.monotonic):
        self.interval_seconds = (
            Config.STALE_CHECK_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self._clock = clock
        self._last_checked: dict[Any, float] = {}

    def should_check(self, key: Any) -> bool:
        now = self._clock()
        last = self._last_checked.get(key)
        if last is not None and now - last < self.interval_seconds:
            return False
        self._last_checked[key] = now
        return True

    def forget(self, key: Any) -> None:
        self._last_checked.pop(key, None)


class ActionScheduler:
    def __init__(
        self,
        tracker: StaleCheckTracker | None = None,
        logger: Any = None,
        stale_after: timedelta | None = None,
        claim_attempts: int | None = None,
        candidate_batch: int | None = None,
    ):
        self.tracker = tracker or StaleCheckTracker()
        self.log = logger or structlog.get_logger()
        self.stale_after = stale_after or timedelta(minutes=Config.STALE_ACTION_MINUTES)
        self.claim_attempts = claim_attempts or Config.CLAIM_ATTEMPTS
        self.candidate_batch = candidate_batch or Config.CANDIDATE_BATCH

    async def reset_stale_actions(self, user: User, force: bool = False) -> int:
        if not force and not self.tracker.should_check(user.id):
            return 0
        cutoff = _now() - self.stale_after
        reset = await ActionQueueEntry.filter(
            owner_id=user.id,
            status=QueueStatus.IN_PROGRESS,
            claimed_at__lt=cutoff,
        ).update(status=QueueStatus.PENDING, result=STALE_RESET_RESULT, claimed_at=None)
        if reset:
            self.log.info("stale_actions_reset", user_id=user.id, count=reset)
        return reset

    async def _blocked_by_earlier_step(self, entry: ActionQueueEntry) -> bool:
        return await ActionQueueEntry.filter(
            campaign_prospect_id=entry.campaign_prospect_id,  # type: ignore[attr-defined]
            step_order__lt=entry.step_order,
            status__in=list(OPEN_QUEUE_STATUSES),
        ).exists()

    async def next_action(
        self,
        user: User,
        exclude_campaign_ids: Iterable[int] = (),
    ) -> ActionQueueEntry | None:
        """Oldest due pending entry of an active campaign, or None.

        An entry waits while an earlier step of the same prospect is still
        pending or in progress, so a retried step cannot be overtaken.
        """
        await self.reset_stale_actions(user)

        query = ActionQueueEntry.filter(
            owner_id=user.id,
            status=QueueStatus.PENDING,
            scheduled_for__lte=_now(),
            campaign__status=CampaignStatus.ACTIVE,
        )
        excluded = list(exclude_campaign_ids)
        if excluded:
            query = query.exclude(campaign_id__in=excluded)

        offset = 0
        while True:
            candidates = (
                await query.order_by("scheduled_for", "id")
                .offset(offset)
                .limit(self.candidate_batch)
                .prefetch_related("campaign", "prospect")
            )
            for entry in candidates:
                if not await self._blocked_by_earlier_step(entry):
                    return entry
            if len(candidates) < self.candidate_batch:
                return None
            offset += self.candidate_batch

    async def claim(self, entry: ActionQueueEntry) -> bool:
        claimed_at = _now()
        updated = await ActionQueueEntry.filter(id=entry.id, status=QueueStatus.PENDING).update(
            status=QueueStatus.IN_PROGRESS,
            claimed_at=claimed_at,
        )
        if not updated:
            self.log.debug("claim_lost", entry_id=entry.id)
            return False
        entry.status = QueueStatus.IN_PROGRESS  # type: ignore[assignment]
        entry.claimed_at = claimed_at  # type: ignore[assignment]
        return True

    async def claim_next(
        self,
        user: User,
        exclude_campaign_ids: Iterable[int] = (),
    ) -> ActionQueueEntry | None:
        excluded = list(exclude_campaign_ids)
        for _ in range(self.claim_attempts):
            entry = await self.next_action(user, excluded)
            if entry is None:
                return None
            if await self.claim(entry):
                self.log.info(
                    "action_claimed",
                    user_id=user.id,
                    entry_id=entry.id,
                    campaign_id=entry.campaign_id,  # type: ignore[attr-defined]
                    action_type=entry.action_type,
                )
                return entry
        return None
