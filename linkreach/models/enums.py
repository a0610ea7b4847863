from enum import Enum


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class ProspectStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class QueueStatus(str, Enum):
    PENDING = "pending"          # waiting to be claimed
    IN_PROGRESS = "in_progress"  # claimed by an executor
    COMPLETED = "completed"
    FAILED = "failed"


class ActionType(str, Enum):
    VISIT = "visit"
    INVITE = "invite"
    MESSAGE = "message"
    FOLLOW = "follow"
    EMAIL = "email"
    # composites: the executor picks the branch at run time
    CONNECT_MESSAGE = "connect_message"
    VISIT_FOLLOW_CONNECT = "visit_follow_connect"
    EMAIL_MESSAGE = "email_message"

    @classmethod
    def parse(cls, value: str | None) -> "ActionType | None":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


TEMPLATE_ACTIONS = frozenset({ActionType.INVITE, ActionType.MESSAGE, ActionType.EMAIL})
OPEN_QUEUE_STATUSES = (QueueStatus.PENDING, QueueStatus.IN_PROGRESS)
