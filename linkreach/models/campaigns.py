from tortoise import fields, models

from .enums import CampaignStatus, ProspectStatus


class Campaign(models.Model):
    id = fields.IntField(pk=True)
    owner = fields.ForeignKeyField(
        "models.User",
        related_name="campaigns",
        on_delete=fields.CASCADE,
    )
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    status = fields.CharEnumField(CampaignStatus, max_length=20, default=CampaignStatus.DRAFT)
    daily_limit = fields.IntField(default=50)
    tag = fields.ForeignKeyField(
        "models.Tag",
        related_name="campaigns",
        null=True,
        on_delete=fields.SET_NULL,
    )
    total_prospects = fields.IntField(default=0)
    processed_prospects = fields.IntField(default=0)
    success_count = fields.IntField(default=0)
    failure_count = fields.IntField(default=0)
    started_at = fields.DatetimeField(null=True)
    completed_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "campaigns"

    def progress_percentage(self) -> float:
        if not self.total_prospects:
            return 0.0
        return round(self.processed_prospects / self.total_prospects * 100, 1)


class CampaignStep(models.Model):
    id = fields.IntField(pk=True)
    campaign = fields.ForeignKeyField(
        "models.Campaign",
        related_name="steps",
        on_delete=fields.CASCADE,
    )
    order = fields.IntField(default=1)
    action_type = fields.CharField(max_length=50)
    delay_days = fields.IntField(default=0)
    message_template = fields.ForeignKeyField(
        "models.MessageTemplate",
        related_name="steps",
        null=True,
        on_delete=fields.SET_NULL,
    )
    config = fields.JSONField(default=dict)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "campaign_steps"
        ordering = ["order", "id"]


class CampaignProspect(models.Model):
    id = fields.IntField(pk=True)
    campaign = fields.ForeignKeyField(
        "models.Campaign",
        related_name="campaign_prospects",
        on_delete=fields.CASCADE,
    )
    prospect = fields.ForeignKeyField(
        "models.Prospect",
        related_name="campaign_entries",
        on_delete=fields.CASCADE,
    )
    status = fields.CharEnumField(ProspectStatus, max_length=20, default=ProspectStatus.PENDING)
    current_step = fields.IntField(default=0)
    # step count frozen when the queue entries were generated
    total_steps = fields.IntField(default=0)
    failure_reason = fields.TextField(null=True)
    last_action_at = fields.DatetimeField(null=True)
    processed_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "campaign_prospects"
        unique_together = (("campaign", "prospect"),)
