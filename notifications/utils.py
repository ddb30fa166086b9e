import logging

from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework.exceptions import NotFound

from edu_core.models import Department
from .models import Notification

logger = logging.getLogger(__name__)
User = get_user_model()

ROLE_ALIASES = {
    'student': 'student',
    'students': 'student',
    'lecturer': 'lecturer',
    'lecturers': 'lecturer',
    'admin': 'admin',
    'admins': 'admin',
}


# Функция resolve_recipient определяет способ адресации уведомления.
# Возвращает пару (recipient, recipient_type):
#   - "all" -> рассылка всем;
#   - имя роли (в том числе во множественном числе) -> роль в единственном числе;
#   - код существующей кафедры -> рассылка по кафедре (тип role);
#   - иначе это должен быть user_id существующего пользователя.
def resolve_recipient(raw):
    recipient = (raw or '').strip()
    if recipient.lower() == 'all':
        return 'all', Notification.RecipientType.ALL

    role = ROLE_ALIASES.get(recipient.lower())
    if role:
        return role, Notification.RecipientType.ROLE

    department = Department.objects.filter(department_id__iexact=recipient).first()
    if department is not None:
        return department.department_id, Notification.RecipientType.ROLE

    if not User.objects.filter(user_id=recipient).exists():
        logger.warning(f"Notification addressed to unknown recipient '{recipient}'")
        raise NotFound('Recipient not found')
    return recipient, Notification.RecipientType.SPECIFIC


# Фильтр входящих для пользователя: личные сообщения, рассылки всем,
# рассылки по его роли и по его кафедре.
def inbox_filter(user):
    condition = Q(recipient=user.user_id) | Q(recipient='all') | Q(recipient=user.role)
    if user.department:
        condition |= Q(recipient=user.department, recipient_type=Notification.RecipientType.ROLE)
    return condition


def inbox_for(user):
    return Notification.objects.filter(inbox_filter(user))


def mark_delivered(user):
    updated = inbox_for(user).filter(status=Notification.Status.SENT).update(status=Notification.Status.DELIVERED)
    if updated:
        logger.debug(f"{updated} notifications marked delivered for {user.user_id}")
    return updated


# Создает ответ на уведомление: адресован отправителю исходного сообщения лично.
def create_reply(original, sender, message):
    return Notification.objects.create(
        title=f"Re: {original.title}",
        message=message,
        sender=sender.user_id,
        sender_name=sender.get_full_name(),
        recipient=original.sender,
        recipient_type=Notification.RecipientType.SPECIFIC,
        priority=Notification.Priority.MEDIUM,
        type=Notification.NotificationType.REPLY,
        parent=original,
        department=sender.department,
    )
