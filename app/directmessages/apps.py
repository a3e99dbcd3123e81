from django.apps import AppConfig


class DirectMessagesConfig(AppConfig):
    """Configuration for the direct messages application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "directmessages"
    verbose_name = "Direct Messages"
