from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from linkreach.auth.authenticate import authenticate
from linkreach.config import Config
from linkreach.models import ActionType, Campaign, CampaignStatus, CampaignStep, MessageTemplate, Tag, User
from linkreach.services import campaign_lifecycle
from linkreach.services.action_data import config_template_ids
from linkreach.services.campaign_lifecycle import StartResult

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


class CampaignStepPayload(BaseModel):
    action_type: str
    delay_days: int = Field(default=0, ge=0)
    message_template_id: int | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class CampaignPayload(BaseModel):
    name: str
    description: str | None = None
    daily_limit: int = Field(default=Config.DEFAULT_CAMPAIGN_DAILY_LIMIT, ge=1)
    tag_id: int | None = None
    steps: list[CampaignStepPayload] = Field(default_factory=list)


class ProspectIdsPayload(BaseModel):
    prospect_ids: list[int] = Field(default_factory=list)


class CampaignStepResponse(BaseModel):
    id: int
    order: int
    action_type: str
    delay_days: int = 0
    message_template_id: int | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class CampaignSummary(BaseModel):
    id: int
    name: str
    description: str | None
    status: str
    daily_limit: int
    tag_id: int | None = None
    total_prospects: int = 0
    processed_prospects: int = 0
    success_count: int = 0
    failure_count: int = 0
    progress_percentage: float = 0.0
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    step_count: int = 0


class CampaignDetail(CampaignSummary):
    steps: list[CampaignStepResponse] = Field(default_factory=list)


class EnrollmentResponse(BaseModel):
    success: bool = True
    changed: int
    total_prospects: int


class CampaignStatsResponse(BaseModel):
    total: int = 0
    draft: int = 0
    active: int = 0
    paused: int = 0
    completed: int = 0


def _iso_or_none(value: Any) -> str | None:
    iso: Callable[[], str] | None = getattr(value, "isoformat", None)
    if callable(iso):
        return iso()
    return None


def _serialize_step(step: CampaignStep) -> CampaignStepResponse:
    return CampaignStepResponse(
        id=step.id,  # type: ignore[arg-type]
        order=step.order,  # type: ignore[arg-type]
        action_type=step.action_type,  # type: ignore[arg-type]
        delay_days=step.delay_days,  # type: ignore[arg-type]
        message_template_id=step.message_template_id,  # type: ignore[attr-defined]
        config=step.config or {},  # type: ignore[arg-type]
    )


def _serialize_campaign(campaign: Campaign, include_steps: bool = False) -> CampaignDetail | CampaignSummary:
    steps = sorted(getattr(campaign, "steps", []) or [], key=lambda s: (s.order or 0, s.id or 0))
    base_kwargs: dict[str, Any] = dict(
        id=campaign.id,
        name=campaign.name,
        description=campaign.description,
        status=campaign.status.value,
        daily_limit=campaign.daily_limit,
        tag_id=campaign.tag_id,  # type: ignore[attr-defined]
        total_prospects=campaign.total_prospects,
        processed_prospects=campaign.processed_prospects,
        success_count=campaign.success_count,
        failure_count=campaign.failure_count,
        progress_percentage=campaign.progress_percentage(),
        started_at=_iso_or_none(campaign.started_at),
        completed_at=_iso_or_none(campaign.completed_at),
        created_at=_iso_or_none(getattr(campaign, "created_at", None)),
        updated_at=_iso_or_none(getattr(campaign, "updated_at", None)),
        step_count=len(steps),
    )
    if include_steps:
        return CampaignDetail(steps=[_serialize_step(step) for step in steps], **base_kwargs)
    return CampaignSummary(**base_kwargs)


async def _get_owned_campaign(campaign_id: int, user: User) -> Campaign:
    campaign = await Campaign.filter(id=campaign_id, owner_id=user.id).prefetch_related("steps").first()
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


async def _validated_steps(steps: list[CampaignStepPayload], user: User) -> list[dict[str, Any]]:
    if not steps:
        raise HTTPException(status_code=400, detail="Campaign must have at least one step")
    cleaned: list[dict[str, Any]] = []
    for step in steps:
        action = ActionType.parse(step.action_type)
        if action is None:
            raise HTTPException(status_code=400, detail=f"Unknown action type: {step.action_type}")
        template_ids = set(config_template_ids(step.config))
        if step.message_template_id is not None:
            template_ids.add(step.message_template_id)
        if template_ids:
            owned = await MessageTemplate.filter(id__in=list(template_ids), owner_id=user.id).count()
            if owned != len(template_ids):
                raise HTTPException(status_code=404, detail="Message template not found")
        cleaned.append(
            {
                "action_type": action.value,
                "delay_days": step.delay_days,
                "message_template_id": step.message_template_id,
                "config": step.config,
            }
        )
    return cleaned


async def _check_tag(tag_id: int | None, user: User) -> None:
    if tag_id is not None and not await Tag.filter(id=tag_id, owner_id=user.id).exists():
        raise HTTPException(status_code=404, detail="Tag not found")


async def _detail(campaign_id: int) -> CampaignDetail:
    campaign = await Campaign.filter(id=campaign_id).prefetch_related("steps").first()
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return _serialize_campaign(campaign, include_steps=True)  # type: ignore[return-value]


@router.get("", response_model=list[CampaignSummary])
async def list_campaigns(
    status: CampaignStatus | None = None,
    search: str | None = None,
    user: User = Depends(authenticate),
):
    query = Campaign.filter(owner_id=user.id)
    if status is not None:
        query = query.filter(status=status)
    if search:
        query = query.filter(name__icontains=search.strip())
    campaigns = await query.prefetch_related("steps").order_by("-created_at", "-id")
    return [_serialize_campaign(campaign) for campaign in campaigns]


@router.get("/stats", response_model=CampaignStatsResponse)
async def get_campaign_stats(user: User = Depends(authenticate)):
    return CampaignStatsResponse(**await campaign_lifecycle.campaign_stats(user.id))  # type: ignore[arg-type]


@router.post("", response_model=CampaignDetail, status_code=201)
async def create_campaign(payload: CampaignPayload, user: User = Depends(authenticate)):
    steps = await _validated_steps(payload.steps, user)
    await _check_tag(payload.tag_id, user)

    campaign = await Campaign.create(
        owner=user,
        name=payload.name,
        description=payload.description,
        daily_limit=payload.daily_limit,
        tag_id=payload.tag_id,
        status=CampaignStatus.DRAFT,
    )
    await campaign_lifecycle.replace_steps(campaign, steps)
    return await _detail(campaign.id)


@router.get("/{campaign_id}", response_model=CampaignDetail)
async def get_campaign(campaign_id: int, user: User = Depends(authenticate)):
    campaign = await _get_owned_campaign(campaign_id, user)
    return _serialize_campaign(campaign, include_steps=True)


@router.put("/{campaign_id}", response_model=CampaignDetail)
async def update_campaign(campaign_id: int, payload: CampaignPayload, user: User = Depends(authenticate)):
    campaign = await _get_owned_campaign(campaign_id, user)
    if campaign.status not in campaign_lifecycle.EDITABLE_STATUSES:
        raise HTTPException(status_code=400, detail="Only draft or paused campaigns can be edited")

    steps = await _validated_steps(payload.steps, user)
    await _check_tag(payload.tag_id, user)

    campaign.name = payload.name  # type: ignore[assignment]
    campaign.description = payload.description  # type: ignore[assignment]
    campaign.daily_limit = payload.daily_limit  # type: ignore[assignment]
    campaign.tag_id = payload.tag_id  # type: ignore[attr-defined]
    await campaign.save()
    await campaign_lifecycle.replace_steps(campaign, steps)
    return await _detail(campaign.id)


@router.delete("/{campaign_id}")
async def delete_campaign(campaign_id: int, user: User = Depends(authenticate)):
    campaign = await _get_owned_campaign(campaign_id, user)
    if not await campaign_lifecycle.delete_campaign(campaign):
        raise HTTPException(status_code=400, detail="Only draft or completed campaigns can be deleted")
    return {"success": True}


@router.post("/{campaign_id}/prospects", response_model=EnrollmentResponse)
async def add_prospects(campaign_id: int, payload: ProspectIdsPayload, user: User = Depends(authenticate)):
    campaign = await _get_owned_campaign(campaign_id, user)
    if campaign.status == CampaignStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Cannot add prospects to a completed campaign")
    added = await campaign_lifecycle.add_prospects(campaign, payload.prospect_ids)
    return EnrollmentResponse(changed=added, total_prospects=campaign.total_prospects)  # type: ignore[arg-type]


@router.post("/{campaign_id}/prospects/remove", response_model=EnrollmentResponse)
async def remove_prospects(campaign_id: int, payload: ProspectIdsPayload, user: User = Depends(authenticate)):
    campaign = await _get_owned_campaign(campaign_id, user)
    removed = await campaign_lifecycle.remove_prospects(campaign, payload.prospect_ids)
    return EnrollmentResponse(changed=removed, total_prospects=campaign.total_prospects)  # type: ignore[arg-type]


@router.post("/{campaign_id}/start", response_model=StartResult)
async def start_campaign(campaign_id: int, user: User = Depends(authenticate)):
    campaign = await _get_owned_campaign(campaign_id, user)
    result = await campaign_lifecycle.start_campaign(campaign)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)
    return result


@router.post("/{campaign_id}/pause", response_model=CampaignSummary)
async def pause_campaign(campaign_id: int, user: User = Depends(authenticate)):
    campaign = await _get_owned_campaign(campaign_id, user)
    if not await campaign_lifecycle.pause_campaign(campaign):
        raise HTTPException(status_code=400, detail="Only active campaigns can be paused")
    return _serialize_campaign(campaign)
