from rest_framework import serializers

from .models import Notification


class ParentNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ('id', 'title', 'message', 'sender', 'recipient')


# Сериализатор NotificationSerializer используется для чтения. Поле isRead для
# входящих вычисляется по отметкам о прочтении текущего пользователя: набор id
# прочитанных уведомлений передается в context['read_ids'].
class NotificationSerializer(serializers.ModelSerializer):
    senderName = serializers.CharField(source='sender_name', read_only=True)
    recipientType = serializers.CharField(source='recipient_type', read_only=True)
    parentNotification = ParentNotificationSerializer(source='parent', read_only=True)
    isReply = serializers.BooleanField(source='is_reply', read_only=True)
    isRead = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Notification
        fields = (
            'id', 'title', 'message', 'sender', 'senderName', 'recipient', 'recipientType',
            'priority', 'type', 'status', 'isRead', 'isReply', 'parentNotification',
            'department', 'createdAt', 'updatedAt',
        )
        read_only_fields = fields

    def get_isRead(self, obj):
        read_ids = self.context.get('read_ids')
        if read_ids is None:
            return obj.is_read
        return obj.pk in read_ids


# Входные данные отправки уведомления.
class SendNotificationSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, max_length=255)
    message = serializers.CharField(required=False, allow_blank=True)
    recipient = serializers.CharField(required=False, allow_blank=True, max_length=50)
    priority = serializers.ChoiceField(choices=Notification.Priority.choices, required=False)
    type = serializers.ChoiceField(choices=Notification.NotificationType.choices, required=False)
    department = serializers.CharField(required=False, allow_blank=True, max_length=20)

    def validate(self, attrs):
        for field in ('title', 'message', 'recipient'):
            attrs[field] = (attrs.get(field) or '').strip()
            if not attrs[field]:
                raise serializers.ValidationError('Title, message, and recipient are required')
        return attrs


class ReplySerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        attrs['message'] = (attrs.get('message') or '').strip()
        if not attrs['message']:
            raise serializers.ValidationError('Reply message is required')
        return attrs
