import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Chat",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
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
                (
                    "chat_type",
                    models.CharField(
                        choices=[("direct", "Direct"), ("group", "Group")],
                        db_index=True,
                        help_text="Type of chat (direct or group)",
                        max_length=10,
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        blank=True, default="", help_text="Group name (empty for direct chats)", max_length=100
                    ),
                ),
                ("description", models.TextField(blank=True, default="", help_text="Group description")),
                ("avatar", models.URLField(blank=True, default="", help_text="Group avatar URL", max_length=500)),
                (
                    "related_activity_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Identifier of the activity this group chat belongs to",
                        max_length=64,
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True, default=True, help_text="Inactive chats are hidden from chat lists"
                    ),
                ),
                (
                    "last_message_at",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="Timestamp of most recent message (for sorting chat lists)",
                        null=True,
                    ),
                ),
                (
                    "message_count",
                    models.PositiveIntegerField(default=0, help_text="Number of messages appended to this chat"),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=0, help_text="Incremented on every mutation of the chat aggregate"
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who created this chat",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_chats",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_chat",
                "ordering": ["-last_message_at", "-created_at"],
                "indexes": [models.Index(fields=["chat_type", "is_active"], name="chat_type_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="DirectChatPair",
            fields=[
                (
                    "chat",
                    models.OneToOneField(
                        help_text="The direct chat this pair represents",
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="direct_pair",
                        serialize=False,
                        to="chat.chat",
                    ),
                ),
                (
                    "user_lower",
                    models.ForeignKey(
                        help_text="User with lower ID in this pair",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user_higher",
                    models.ForeignKey(
                        help_text="User with higher ID in this pair",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_direct_chat_pair",
                "constraints": [
                    models.UniqueConstraint(fields=("user_lower", "user_higher"), name="unique_direct_chat_pair"),
                    models.CheckConstraint(
                        condition=models.Q(("user_lower_id__lt", models.F("user_higher_id"))),
                        name="direct_pair_lower_less_than_higher",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChatParticipant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
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
                (
                    "role",
                    models.CharField(
                        choices=[("admin", "Admin"), ("member", "Member")],
                        default="member",
                        help_text="Role in the chat",
                        max_length=10,
                    ),
                ),
                (
                    "joined_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, help_text="When the user joined this chat"
                    ),
                ),
                (
                    "last_read_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, help_text="Last time the user marked the chat as read"
                    ),
                ),
                ("is_muted", models.BooleanField(default=False, help_text="Whether the user muted this chat")),
                (
                    "chat",
                    models.ForeignKey(
                        help_text="Chat this roster entry belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="chat.chat",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="User participating in the chat",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_participations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_participant",
                "ordering": ["joined_at", "id"],
                "indexes": [models.Index(fields=["user", "chat"], name="chat_part_user_chat_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("chat", "user"), name="unique_chat_participant"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
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
                ("content", models.TextField(blank=True, help_text="Message text or caption")),
                (
                    "message_type",
                    models.CharField(
                        choices=[("text", "Text"), ("image", "Image"), ("file", "File"), ("system", "System")],
                        default="text",
                        help_text="Type of message",
                        max_length=10,
                    ),
                ),
                (
                    "file_url",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Asset reference for image and file messages",
                        max_length=500,
                    ),
                ),
                (
                    "sequence",
                    models.PositiveIntegerField(help_text="Position of this message in the chat log (1-based)"),
                ),
                (
                    "is_edited",
                    models.BooleanField(default=False, help_text="Whether the content was edited after sending"),
                ),
                (
                    "edited_at",
                    models.DateTimeField(blank=True, help_text="When the content was last edited", null=True),
                ),
                (
                    "client_message_id",
                    models.CharField(
                        blank=True,
                        help_text="Idempotency key supplied by the sending client",
                        max_length=64,
                        null=True,
                    ),
                ),
                (
                    "chat",
                    models.ForeignKey(
                        help_text="Chat this message belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.chat",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who sent this message",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="chat_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_message",
                "ordering": ["chat", "sequence"],
                "indexes": [
                    models.Index(fields=["chat", "created_at"], name="chat_msg_chat_created_idx"),
                    models.Index(fields=["sender", "-created_at"], name="chat_msg_sender_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("chat", "sequence"), name="unique_message_sequence"),
                    models.UniqueConstraint(
                        condition=models.Q(("client_message_id__isnull", False)),
                        fields=("chat", "sender", "client_message_id"),
                        name="unique_client_message_id",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="chat",
            name="last_message",
            field=models.ForeignKey(
                blank=True,
                help_text="Most recently appended message",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="chat.message",
            ),
        ),
        migrations.CreateModel(
            name="MessageReadReceipt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("read_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "message",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="read_receipts",
                        to="chat.message",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="message_read_receipts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_message_read_receipt",
                "ordering": ["read_at", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("message", "user"), name="unique_message_read_receipt"),
                ],
            },
        ),
        migrations.AddField(
            model_name="message",
            name="read_by",
            field=models.ManyToManyField(
                blank=True,
                related_name="read_chat_messages",
                through="chat.MessageReadReceipt",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]
