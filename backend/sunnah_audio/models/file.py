# sunnah_audio/models/file.py
"""
Audio files and their download audit trail.
"""
from tortoise import fields, models

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class AudioFile(models.Model):
    """
    An uploaded audio asset. `location` is the file name inside the uploads
    directory. `downloads` only ever grows, and only through the download
    gateway.
    """
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=255)  # display name, used for Content-Disposition
    location = fields.CharField(max_length=512)
    size = fields.BigIntField(default=0)
    content_type = fields.CharField(max_length=255, default=DEFAULT_CONTENT_TYPE)
    duration = fields.CharField(max_length=16, default="00:00")
    uid = fields.CharField(max_length=16, null=True)
    book = fields.ForeignKeyField("models.Book", related_name="files", on_delete=fields.RESTRICT)
    scholar = fields.ForeignKeyField("models.Scholar", related_name="files", on_delete=fields.RESTRICT)
    downloads = fields.IntField(default=0)
    status = fields.CharField(max_length=16, default="active")
    created_by = fields.ForeignKeyField("models.User", related_name="uploads", null=True, on_delete=fields.SET_NULL)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "files"


class DownloadLog(models.Model):
    """Append-only audit row, one per metered download."""
    id = fields.IntField(pk=True)
    user = fields.ForeignKeyField("models.User", related_name="download_logs", on_delete=fields.RESTRICT)
    subscription = fields.ForeignKeyField(
        "models.UserSubscription", related_name="download_logs", null=True, on_delete=fields.SET_NULL
    )
    file = fields.ForeignKeyField("models.AudioFile", related_name="download_logs", on_delete=fields.RESTRICT)
    download_ip = fields.CharField(max_length=64, null=True)
    user_agent = fields.CharField(max_length=512, null=True)
    downloaded_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "download_logs"
