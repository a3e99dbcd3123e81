"""
Direct message models.

Models:
    DirectMessage: A message sent from one user to another

Design Decisions:
    - No conversation table: the thread of a pair is a query over
      (from_user, to_user) in either order
    - Messages are soft deleted; the default manager hides deleted rows
    - Read state is a flag on the message (is_read, read_at)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel


class DirectMessage(SoftDeleteMixin, BaseModel):
    """
    A 1:1 message between two users.

    Fields:
        from_user: Sender
        to_user: Recipient
        text: Trimmed message text
        is_read, read_at: Set when the recipient marks the sender's messages read

    Managers:
        objects: Excludes soft-deleted messages
        all_objects: Includes soft-deleted messages
    """

    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_direct_messages",
        help_text="User who sent this message",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_direct_messages",
        help_text="User this message is addressed to",
    )

    text = models.TextField(help_text="Message text")

    is_read = models.BooleanField(
        default=False,
        help_text="Whether the recipient has read this message",
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the recipient read this message",
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        db_table = "direct_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["from_user", "to_user", "-created_at"],
                name="dm_pair_created_idx",
            ),
            models.Index(
                fields=["to_user", "is_read"],
                name="dm_to_read_idx",
            ),
            models.Index(
                fields=["from_user", "-created_at"],
                name="dm_from_created_idx",
            ),
            models.Index(
                fields=["to_user", "-created_at"],
                name="dm_to_created_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        preview = self.text[:50] + "..." if len(self.text) > 50 else self.text
        return f"DM {self.from_user_id} -> {self.to_user_id}: {preview}"
