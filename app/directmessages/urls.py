"""
URL configuration for direct messages API.

All URLs are prefixed with /api/v1/dm/ in the main URL configuration.
"""

from django.urls import path

from directmessages.views import (
    ConversationView,
    DeleteDirectMessageView,
    MarkReadView,
    RecentConversationsView,
    SendDirectMessageView,
    UnreadCountView,
)

app_name = "directmessages"

urlpatterns = [
    path("conversation/<int:user_id>/", ConversationView.as_view(), name="conversation"),
    path("send/", SendDirectMessageView.as_view(), name="send"),
    path("read/<int:sender_id>/", MarkReadView.as_view(), name="mark-read"),
    path("unread/count/", UnreadCountView.as_view(), name="unread-count"),
    path("recent/", RecentConversationsView.as_view(), name="recent"),
    path("<int:message_id>/", DeleteDirectMessageView.as_view(), name="delete"),
]
