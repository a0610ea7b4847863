from .user import User
from .prospects import MessageTemplate, Prospect, Tag
from .campaigns import Campaign, CampaignProspect, CampaignStep
from .action_queue import ActionQueueEntry
from .enums import (
    OPEN_QUEUE_STATUSES,
    TEMPLATE_ACTIONS,
    ActionType,
    CampaignStatus,
    ProspectStatus,
    QueueStatus,
)

__all__ = [
    "User",
    "Prospect",
    "Tag",
    "MessageTemplate",
    "Campaign",
    "CampaignStep",
    "CampaignProspect",
    "ActionQueueEntry",
    "ActionType",
    "CampaignStatus",
    "ProspectStatus",
    "QueueStatus",
    "TEMPLATE_ACTIONS",
    "OPEN_QUEUE_STATUSES",
]
