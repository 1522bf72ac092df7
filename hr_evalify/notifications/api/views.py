from __future__ import annotations

from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import mixins
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from hr_evalify.notifications.models import Notification

from .serializers import NotificationSerializer


@extend_schema_view(
    list=extend_schema(summary="List my notifications"),
    retrieve=extend_schema(summary="Get one of my notifications"),
    destroy=extend_schema(summary="Delete one of my notifications"),
)
class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    GenericViewSet,
):
    """Notifications for the authenticated user.

    - list: shows request.user's notifications (``?unread=true`` filters)
    - destroy: deletes a notification (recipient only)
    - mark_read / mark_all_read
    """

    permission_classes = [IsAuthenticated]
    serializer_class = NotificationSerializer

    def get_queryset(self):
        qs = Notification.objects.filter(recipient=self.request.user)
        if self.request.query_params.get("unread", "").lower() in {"1", "true"}:
            qs = qs.filter(is_read=False)
        return qs

    @extend_schema(request=None, responses={204: None})
    @action(detail=True, methods=["post"], url_path="mark-read")
    def mark_read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses={204: None})
    @action(detail=False, methods=["post"], url_path="mark-all-read")
    def mark_all_read(self, request):
        self.get_queryset().filter(is_read=False).update(is_read=True)
        return Response(status=status.HTTP_204_NO_CONTENT)
