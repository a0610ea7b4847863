from tortoise import fields, models


class Prospect(models.Model):
    id = fields.IntField(pk=True)
    owner = fields.ForeignKeyField(
        "models.User",
        related_name="prospects",
        on_delete=fields.CASCADE,
    )
    full_name = fields.CharField(max_length=255, null=True)
    company = fields.CharField(max_length=255, null=True)
    headline = fields.CharField(max_length=500, null=True)
    location = fields.CharField(max_length=255, null=True)
    email = fields.CharField(max_length=255, null=True)
    profile_url = fields.CharField(max_length=500, null=True)
    linkedin_id = fields.CharField(max_length=255, null=True)
    connection_status = fields.CharField(max_length=50, default="not_connected")
    tags = fields.ManyToManyField(
        "models.Tag",
        related_name="prospects",
        through="prospect_tags",
    )
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "prospects"
        unique_together = (("owner", "linkedin_id"),)


class Tag(models.Model):
    id = fields.IntField(pk=True)
    owner = fields.ForeignKeyField(
        "models.User",
        related_name="tags",
        on_delete=fields.CASCADE,
    )
    name = fields.CharField(max_length=100)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "tags"
        unique_together = (("owner", "name"),)


class MessageTemplate(models.Model):
    id = fields.IntField(pk=True)
    owner = fields.ForeignKeyField(
        "models.User",
        related_name="message_templates",
        on_delete=fields.CASCADE,
    )
    name = fields.CharField(max_length=255)
    type = fields.CharField(max_length=50, default="message")
    subject = fields.CharField(max_length=255, null=True)
    content = fields.TextField()
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "message_templates"
