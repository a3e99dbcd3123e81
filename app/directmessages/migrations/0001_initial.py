import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DirectMessage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "is_deleted",
                    models.BooleanField(
                        db_index=True, default=False, help_text="Whether this record has been soft deleted"
                    ),
                ),
                (
                    "deleted_at",
                    models.DateTimeField(
                        blank=True, help_text="Timestamp when this record was soft deleted", null=True
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
                ),
                ("text", models.TextField(help_text="Message text")),
                (
                    "is_read",
                    models.BooleanField(default=False, help_text="Whether the recipient has read this message"),
                ),
                (
                    "read_at",
                    models.DateTimeField(blank=True, help_text="When the recipient read this message", null=True),
                ),
                (
                    "from_user",
                    models.ForeignKey(
                        help_text="User who sent this message",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sent_direct_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "to_user",
                    models.ForeignKey(
                        help_text="User this message is addressed to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="received_direct_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "direct_message",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["from_user", "to_user", "-created_at"], name="dm_pair_created_idx"),
                    models.Index(fields=["to_user", "is_read"], name="dm_to_read_idx"),
                    models.Index(fields=["from_user", "-created_at"], name="dm_from_created_idx"),
                    models.Index(fields=["to_user", "-created_at"], name="dm_to_created_idx"),
                ],
            },
        ),
    ]
