"""Payload builders for queued actions.

Each action type has one resolver registered in ``_RESOLVERS``. A resolver
receives the step, the prospect and a lookup of message templates by id and
returns a frozen payload model. The payload is stored on the queue entry as
JSON, so later template edits never change work that is already scheduled.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

import structlog
from pydantic import BaseModel, ConfigDict

from linkreach.models import TEMPLATE_ACTIONS, ActionType, CampaignStep, MessageTemplate
from linkreach.services.personalization import render

log = structlog.get_logger()

DEFAULT_EMAIL_SUBJECT = "Hello {firstName}"

TemplateLookup = Mapping[int, MessageTemplate]


class ActionPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_order: int
    action_key: str
    config: dict[str, Any] | None = None

    def to_action_data(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TemplatedPayload(ActionPayload):
    message: str | None = None
    email_subject: str | None = None
    email_body: str | None = None
    template_id: int | None = None
    template_type: str | None = None


class ConnectMessagePayload(ActionPayload):
    connected_message: str | None = None
    connected_template_id: int | None = None
    invite_message: str | None = None
    invite_template_id: int | None = None
    is_conditional: bool = True


class ComboPayload(ActionPayload):
    invite_message: str | None = None
    template_id: int | None = None
    is_combo: bool = True


class EmailMessagePayload(ActionPayload):
    prospect_email: str | None = None
    email_subject: str | None = None
    email_body: str | None = None
    email_template_id: int | None = None
    fallback_message: str | None = None
    fallback_template_id: int | None = None
    is_conditional: bool = True

    def to_action_data(self) -> dict[str, Any]:
        data = super().to_action_data()
        # the executor tries live extraction when this is null
        data["prospect_email"] = self.prospect_email
        return data


def _config(step: CampaignStep) -> dict:
    return step.config or {}


SECONDARY_TEMPLATE_KEYS = ("invite_template_id", "fallback_template_id")


def _template_id_value(config: Mapping[str, Any], key: str) -> int | None:
    value = config.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _config_template_id(step: CampaignStep, key: str) -> int | None:
    return _template_id_value(_config(step), key)


def config_template_ids(config: Mapping[str, Any] | None) -> list[int]:
    """Template ids referenced from a step config, in key order."""
    ids = []
    for key in SECONDARY_TEMPLATE_KEYS:
        template_id = _template_id_value(config or {}, key)
        if template_id is not None:
            ids.append(template_id)
    return ids


def secondary_template_ids(step: CampaignStep) -> list[int]:
    return config_template_ids(_config(step))


def _primary_template(step: CampaignStep, templates: TemplateLookup) -> MessageTemplate | None:
    template_id = getattr(step, "message_template_id", None)
    if template_id is None:
        return None
    return templates.get(template_id)


def _base_fields(step: CampaignStep, action_key: str) -> dict[str, Any]:
    return {
        "step_order": step.order,
        "action_key": action_key,
        "config": _config(step) or None,
    }


def _resolve_plain(step: CampaignStep, action: ActionType, prospect: Any, templates: TemplateLookup) -> ActionPayload:
    template = _primary_template(step, templates)
    if action not in TEMPLATE_ACTIONS or template is None:
        return TemplatedPayload(**_base_fields(step, action.value))

    message = render(template.content, prospect)
    extra: dict[str, Any] = {}
    if action is ActionType.EMAIL:
        extra["email_subject"] = render(template.subject or DEFAULT_EMAIL_SUBJECT, prospect)
        extra["email_body"] = message
    return TemplatedPayload(
        **_base_fields(step, action.value),
        message=message,
        template_id=template.id,
        template_type=template.type,
        **extra,
    )


def _resolve_connect_message(
    step: CampaignStep, action: ActionType, prospect: Any, templates: TemplateLookup
) -> ActionPayload:
    fields: dict[str, Any] = {}
    primary = _primary_template(step, templates)
    if primary is not None:
        fields["connected_message"] = render(primary.content, prospect)
        fields["connected_template_id"] = primary.id

    invite_id = _config_template_id(step, "invite_template_id")
    invite = templates.get(invite_id) if invite_id is not None else None
    if invite is not None:
        fields["invite_message"] = render(invite.content, prospect)
        fields["invite_template_id"] = invite.id

    return ConnectMessagePayload(**_base_fields(step, action.value), **fields)


def _resolve_visit_follow_connect(
    step: CampaignStep, action: ActionType, prospect: Any, templates: TemplateLookup
) -> ActionPayload:
    primary = _primary_template(step, templates)
    if primary is None:
        return ComboPayload(**_base_fields(step, action.value))
    return ComboPayload(
        **_base_fields(step, action.value),
        invite_message=render(primary.content, prospect),
        template_id=primary.id,
    )


def _resolve_email_message(
    step: CampaignStep, action: ActionType, prospect: Any, templates: TemplateLookup
) -> ActionPayload:
    fields: dict[str, Any] = {"prospect_email": getattr(prospect, "email", None)}
    primary = _primary_template(step, templates)
    if primary is not None:
        fields["email_subject"] = render(primary.subject or DEFAULT_EMAIL_SUBJECT, prospect)
        fields["email_body"] = render(primary.content, prospect)
        fields["email_template_id"] = primary.id

    fallback_id = _config_template_id(step, "fallback_template_id")
    fallback = templates.get(fallback_id) if fallback_id is not None else None
    if fallback is not None:
        fields["fallback_message"] = render(fallback.content, prospect)
        fields["fallback_template_id"] = fallback.id

    return EmailMessagePayload(**_base_fields(step, action.value), **fields)


Resolver = Callable[[CampaignStep, ActionType, Any, TemplateLookup], ActionPayload]

_RESOLVERS: dict[ActionType, Resolver] = {
    ActionType.VISIT: _resolve_plain,
    ActionType.INVITE: _resolve_plain,
    ActionType.MESSAGE: _resolve_plain,
    ActionType.FOLLOW: _resolve_plain,
    ActionType.EMAIL: _resolve_plain,
    ActionType.CONNECT_MESSAGE: _resolve_connect_message,
    ActionType.VISIT_FOLLOW_CONNECT: _resolve_visit_follow_connect,
    ActionType.EMAIL_MESSAGE: _resolve_email_message,
}


def build_payload(step: CampaignStep, prospect: Any, templates: TemplateLookup | None = None) -> ActionPayload:
    templates = templates or {}
    action = ActionType.parse(step.action_type)
    if action is None:
        log.warning("unknown_action_type", step_id=getattr(step, "id", None), action_type=step.action_type)
        return ActionPayload(step_order=step.order, action_key=step.action_type)
    return _RESOLVERS[action](step, action, prospect, templates)


def resolve_action_data(step: CampaignStep, prospect: Any, templates: TemplateLookup | None = None) -> dict[str, Any]:
    return build_payload(step, prospect, templates).to_action_data()
