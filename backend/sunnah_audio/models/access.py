# sunnah_audio/models/access.py
from tortoise import fields, models


class ScholarAccess(models.Model):
    """
    ACL row: `user` may create, modify and upload content under `scholar`.
    Admins never need a row. (user, scholar) is unique; granting is an upsert.
    """
    id = fields.IntField(pk=True)
    user = fields.ForeignKeyField("models.User", related_name="scholar_access", on_delete=fields.CASCADE)
    scholar = fields.ForeignKeyField("models.Scholar", related_name="access_rows", on_delete=fields.CASCADE)
    granted_by = fields.ForeignKeyField(
        "models.User", related_name="granted_access", null=True, on_delete=fields.SET_NULL
    )
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "scholar_access"
        unique_together = (("user", "scholar"),)
