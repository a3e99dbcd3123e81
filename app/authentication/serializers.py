"""
Serializers for authentication models.

This module provides DRF serializers for:
- User model (read operations)
- Compact user summaries embedded in chat and direct message payloads

Related files:
    - models.py: User and Profile models
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model (read operations).

    Includes profile data for convenience.
    """

    username = serializers.CharField(source="profile.username", read_only=True, default="")
    avatar = serializers.CharField(source="profile.avatar", read_only=True, default="")

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "avatar",
            "date_joined",
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Public identity of a user as shown to other users.

    Email is not exposed.
    """

    username = serializers.CharField(source="profile.username", read_only=True, default="")
    avatar = serializers.CharField(source="profile.avatar", read_only=True, default="")

    class Meta:
        model = User
        fields = ["id", "username", "avatar"]
        read_only_fields = fields
