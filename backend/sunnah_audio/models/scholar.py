# sunnah_audio/models/scholar.py
"""
Scholars and their books (lecture series).
Only the columns the access checks and uploads rely on are modelled here.
"""
from tortoise import fields, models


class Scholar(models.Model):
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=255)
    status = fields.CharField(max_length=16, default="active")
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "scholars"


class Book(models.Model):
    id = fields.IntField(pk=True)
    scholar = fields.ForeignKeyField("models.Scholar", related_name="books", on_delete=fields.RESTRICT)
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    status = fields.CharField(max_length=16, default="active")
    created_by = fields.ForeignKeyField("models.User", related_name="books", null=True, on_delete=fields.SET_NULL)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "books"
        unique_together = (("scholar", "name"),)
