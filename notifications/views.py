import logging

from django.contrib.auth import get_user_model
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.response import Response

from core.pagination import EnvelopePagination
from users.permissions import IsLecturerOrAdmin, PolicyMixin
from users.serializers import UserSerializer
from . import utils
from .models import Notification, NotificationReadReceipt
from .serializers import NotificationSerializer, ReplySerializer, SendNotificationSerializer

logger = logging.getLogger(__name__)
User = get_user_model()


class NotificationPagination(EnvelopePagination):
    page_size = 20


# Класс NotificationViewSet объединяет входящие, отправленные, отправку, ответы,
# отметку о прочтении и удаление уведомлений. Маршруты:
#   GET inbox/, GET sent/, GET stats/, GET users/, POST send/,
#   POST reply/<id>/, PUT read/<id>/, DELETE <id>/.
# Отправлять уведомления и просматривать список адресатов могут только
# преподаватели и администраторы; остальные действия доступны любому
# аутентифицированному пользователю.
class NotificationViewSet(PolicyMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    queryset = Notification.objects.select_related('parent')
    serializer_class = NotificationSerializer
    pagination_class = NotificationPagination
    filter_backends = []
    lookup_value_regex = r'\d+'
    permission_policy = {
        'send': [IsLecturerOrAdmin],
        'users': [IsLecturerOrAdmin],
        '*': [permissions.IsAuthenticated],
    }
    permission_messages = {
        'send': 'Unauthorized. Only admins and lecturers can send notifications.',
        'users': 'Unauthorized to view users',
    }

    def _read_ids(self, notifications):
        return set(
            NotificationReadReceipt.objects.filter(
                user_id=self.request.user.user_id,
                notification__in=[n.pk for n in notifications],
            ).values_list('notification_id', flat=True)
        )

    @action(detail=False, methods=['get'])
    def inbox(self, request):
        user = request.user
        notifications = utils.inbox_for(user).select_related('parent')
        notification_type = request.query_params.get('type')
        if notification_type:
            notifications = notifications.filter(type=notification_type)

        page = self.paginate_queryset(notifications.order_by('-created_at', '-id'))
        utils.mark_delivered(user)

        context = self.get_serializer_context()
        context['read_ids'] = self._read_ids(page)
        serializer = NotificationSerializer(page, many=True, context=context)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=['get'])
    def sent(self, request):
        notifications = self.get_queryset().filter(sender=request.user.user_id).order_by('-created_at', '-id')
        page = self.paginate_queryset(notifications)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        user = request.user
        inbox = utils.inbox_for(user)
        return Response({
            'success': True,
            'data': {
                'total': inbox.count(),
                'unread': inbox.exclude(read_receipts__user_id=user.user_id).count(),
                'sent': Notification.objects.filter(sender=user.user_id).count(),
            },
        })

    # Список адресатов для выбора получателя. Значение 'all' в фильтрах
    # означает отсутствие фильтра.
    @action(detail=False, methods=['get'])
    def users(self, request):
        users = User.objects.all()
        role = request.query_params.get('role')
        department = request.query_params.get('department')
        if role and role != 'all':
            users = users.filter(role=role)
        if department and department != 'all':
            users = users.filter(department__iexact=department)
        serializer = UserSerializer(users.order_by('first_name', 'last_name'), many=True)
        return Response({'success': True, 'data': serializer.data})

    @action(detail=False, methods=['post'])
    def send(self, request):
        serializer = SendNotificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        recipient, recipient_type = utils.resolve_recipient(data['recipient'])
        notification = Notification.objects.create(
            title=data['title'],
            message=data['message'],
            sender=request.user.user_id,
            sender_name=request.user.get_full_name(),
            recipient=recipient,
            recipient_type=recipient_type,
            priority=data.get('priority') or Notification.Priority.MEDIUM,
            type=data.get('type') or Notification.NotificationType.MESSAGE,
            department=data.get('department') or request.user.department,
        )
        logger.info(f"Notification {notification.pk} sent by {request.user.user_id} to {recipient} ({recipient_type})")
        return Response({
            'success': True,
            'message': 'Notification sent successfully',
            'data': self.get_serializer(notification).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], url_path=r'reply/(?P<notification_id>\d+)')
    def reply(self, request, notification_id=None):
        serializer = ReplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        original = Notification.objects.filter(pk=notification_id).first()
        if original is None:
            raise NotFound('Original notification not found')

        reply = utils.create_reply(original, request.user, serializer.validated_data['message'])
        logger.info(f"Reply {reply.pk} to notification {original.pk} sent by {request.user.user_id}")
        return Response({
            'success': True,
            'message': 'Reply sent successfully',
            'data': self.get_serializer(reply).data,
        }, status=status.HTTP_201_CREATED)

    # Отметка о прочтении идемпотентна. Общий статус уведомления становится read
    # только если его прочитал прямой адресат.
    @action(detail=False, methods=['put'], url_path=r'read/(?P<notification_id>\d+)')
    def read(self, request, notification_id=None):
        notification = Notification.objects.filter(pk=notification_id).first()
        if notification is None:
            raise NotFound('Notification not found')

        user_id = request.user.user_id
        _, created = NotificationReadReceipt.objects.get_or_create(notification=notification, user_id=user_id)
        if created and notification.recipient == user_id:
            notification.status = Notification.Status.READ
            notification.is_read = True
            notification.save(update_fields=['status', 'is_read', 'updated_at'])

        return Response({'success': True, 'message': 'Notification marked as read'})

    def destroy(self, request, *args, **kwargs):
        notification = self.get_queryset().filter(pk=kwargs['pk']).first()
        if notification is None:
            raise NotFound('Notification not found')

        user = request.user
        if user.user_id not in (notification.sender, notification.recipient) and not user.is_admin:
            logger.warning(f"User {user.user_id} attempted to delete notification {notification.pk}")
            raise PermissionDenied('Unauthorized to delete this notification')

        notification.delete()
        logger.info(f"Notification {kwargs['pk']} deleted by {user.user_id}")
        return Response({'success': True, 'message': 'Notification deleted successfully'})
