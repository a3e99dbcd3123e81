"""
Model mixins providing reusable functionality for Django models.

This module contains abstract mixin classes that can be combined with
BaseModel to add specific functionality.

Available Mixins:
    SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin

    class DirectMessage(SoftDeleteMixin, BaseModel):
        text = models.TextField()

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
    - Pair with SoftDeleteManager (see core.managers) when deleted rows
      should be hidden by default
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteMixin(models.Model):
    """
    Soft delete support for models.

    Instead of permanently deleting records, marks them as deleted.
    Deleted records stay in place so ordered logs keep their positions.

    Fields:
        is_deleted: Boolean flag indicating soft delete status
        deleted_at: Timestamp when the record was soft deleted

    Usage:
        from core.managers import SoftDeleteManager

        class DirectMessage(SoftDeleteMixin, BaseModel):
            objects = SoftDeleteManager()  # Excludes deleted by default
            all_objects = models.Manager()  # Includes deleted

        message.soft_delete()
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when this record was soft deleted",
    )

    class Meta:
        abstract = True

    def soft_delete(self) -> bool:
        """
        Mark this record as deleted.

        Sets is_deleted=True and deleted_at to current time. Calling it on an
        already deleted record changes nothing.

        Returns:
            True if the record was changed, False if it was already deleted
        """
        if self.is_deleted:
            return False
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])
        return True
