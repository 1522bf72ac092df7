from __future__ import annotations

from rest_framework import serializers

from hr_evalify.notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Read serializer for notifications."""

    unread = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = (
            "id",
            "recipient",
            "title",
            "message",
            "notification_type",
            "is_read",
            "unread",
            "created_at",
            "related_link",
        )
        read_only_fields = fields

    def get_unread(self, obj: Notification) -> bool:
        return not bool(obj.is_read)
