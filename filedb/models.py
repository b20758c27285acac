from django.db import models


class VersionedFile(models.Model):
    """One stored version of a file, identified by its key and timestamp."""

    pk = models.CompositePrimaryKey("key", "timestamp")
    key = models.TextField()
    timestamp = models.DateTimeField()
    payload = models.BinaryField()

    class Meta:
        ordering = ["key", "timestamp"]

    def __str__(self) -> str:
        return f"{self.key} @ {self.timestamp.isoformat()}"
