import logging

from django.db import models
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)


# Модель Notification представляет сообщение, отправленное пользователем системы.
# Адресат хранится строкой: user_id конкретного пользователя, имя роли, код кафедры
# или "all". Способ адресации фиксируется в recipient_type при отправке
# (см. notifications.utils.resolve_recipient), а выборка входящих строится
# фильтром notifications.utils.inbox_filter.
# - sender / sender_name: user_id и полное имя отправителя на момент отправки.
# - status: жизненный цикл sent -> delivered (при первом чтении входящих) -> read
#   (только когда прочитал прямой адресат).
# - parent: исходное уведомление, если это ответ.
class Notification(models.Model):
    class RecipientType(models.TextChoices):
        ALL = 'all', _('Все пользователи')
        ROLE = 'role', _('Роль или кафедра')
        SPECIFIC = 'specific', _('Конкретный пользователь')

    class Priority(models.TextChoices):
        LOW = 'low', _('Низкий')
        MEDIUM = 'medium', _('Средний')
        HIGH = 'high', _('Высокий')

    class NotificationType(models.TextChoices):
        ANNOUNCEMENT = 'announcement', _('Объявление')
        MESSAGE = 'message', _('Сообщение')
        REPLY = 'reply', _('Ответ')
        SYSTEM = 'system', _('Системное')

    class Status(models.TextChoices):
        SENT = 'sent', _('Отправлено')
        DELIVERED = 'delivered', _('Доставлено')
        READ = 'read', _('Прочитано')

    title = models.CharField(_('заголовок'), max_length=255)
    message = models.TextField(_('текст уведомления'))
    sender = models.CharField(_('отправитель'), max_length=50)
    sender_name = models.CharField(_('имя отправителя'), max_length=255)
    recipient = models.CharField(_('получатель'), max_length=50)
    recipient_type = models.CharField(_('тип адресации'), max_length=10, choices=RecipientType.choices)
    priority = models.CharField(_('приоритет'), max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    type = models.CharField(
        _('тип уведомления'), max_length=20, choices=NotificationType.choices, default=NotificationType.MESSAGE
    )
    status = models.CharField(_('статус'), max_length=10, choices=Status.choices, default=Status.SENT)
    is_read = models.BooleanField(_('прочитано'), default=False)
    parent = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True,
        related_name='replies', verbose_name=_('исходное уведомление')
    )
    department = models.CharField(_('кафедра'), max_length=20, blank=True, default='')
    created_at = models.DateTimeField(_('создано'), auto_now_add=True)
    updated_at = models.DateTimeField(_('обновлено'), auto_now=True)

    class Meta:
        verbose_name = _('уведомление')
        verbose_name_plural = _('уведомления')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', '-created_at']),
            models.Index(fields=['sender', '-created_at']),
            models.Index(fields=['recipient_type', 'recipient']),
        ]

    def __str__(self):
        return f"{self.title} ({self.sender} -> {self.recipient})"

    @property
    def is_reply(self):
        return self.parent_id is not None


# Отметка о прочтении уведомления конкретным пользователем. Для рассылок по роли
# или всем пользователям это единственный признак "прочитано" для каждого адресата.
class NotificationReadReceipt(models.Model):
    notification = models.ForeignKey(
        Notification, on_delete=models.CASCADE, related_name='read_receipts', verbose_name=_('уведомление')
    )
    user_id = models.CharField(_('пользователь'), max_length=50)
    read_at = models.DateTimeField(_('прочитано'), auto_now_add=True)

    class Meta:
        verbose_name = _('отметка о прочтении')
        verbose_name_plural = _('отметки о прочтении')
        unique_together = ('notification', 'user_id')

    def __str__(self):
        return f"{self.user_id} read #{self.notification_id}"
