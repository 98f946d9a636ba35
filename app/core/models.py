"""
Abstract timestamped model.

Connection, Profile and PresenceRecord extend BaseModel. Message does not:
its ``created_at`` is the conversation ordering key and it has no
``updated_at``.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Adds ``created_at`` and ``updated_at``.

    ``QuerySet.update()`` skips auto_now; presence writes that go through
    update() pass ``updated_at`` themselves.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{type(self).__name__} {self.pk}"
