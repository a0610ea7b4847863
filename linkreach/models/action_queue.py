from tortoise import fields, models

from .enums import QueueStatus


class ActionQueueEntry(models.Model):
    id = fields.IntField(pk=True)
    owner = fields.ForeignKeyField(
        "models.User",
        related_name="queued_actions",
        on_delete=fields.CASCADE,
    )
    campaign = fields.ForeignKeyField(
        "models.Campaign",
        related_name="queued_actions",
        on_delete=fields.CASCADE,
    )
    campaign_prospect = fields.ForeignKeyField(
        "models.CampaignProspect",
        related_name="queued_actions",
        on_delete=fields.CASCADE,
    )
    prospect = fields.ForeignKeyField(
        "models.Prospect",
        related_name="queued_actions",
        on_delete=fields.CASCADE,
    )
    step = fields.ForeignKeyField(
        "models.CampaignStep",
        related_name="queued_actions",
        null=True,
        on_delete=fields.SET_NULL,
    )
    step_order = fields.IntField(default=1)
    action_type = fields.CharField(max_length=50)
    action_data = fields.JSONField(default=dict)
    scheduled_for = fields.DatetimeField()
    status = fields.CharEnumField(QueueStatus, max_length=20, default=QueueStatus.PENDING)
    retry_count = fields.IntField(default=0)
    result = fields.TextField(null=True)
    claimed_at = fields.DatetimeField(null=True)
    executed_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "action_queue"
        indexes = (("status", "scheduled_for"), ("campaign_prospect_id", "step_order"))
