from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import Notification, NotificationReadReceipt


class NotificationReadReceiptInline(admin.TabularInline):
    model = NotificationReadReceipt
    readonly_fields = ('user_id', 'read_at')
    extra = 0
    can_delete = False


# Класс NotificationAdmin. Поля отправки устанавливаются программно и доступны
# только для чтения; отметки о прочтении показаны встроенным списком.
@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'message_preview', 'sender', 'recipient', 'recipient_type', 'type', 'status', 'created_at')
    list_filter = ('recipient_type', 'type', 'priority', 'status')
    search_fields = ('title', 'message', 'sender', 'sender_name', 'recipient')
    readonly_fields = ('sender', 'sender_name', 'recipient', 'recipient_type', 'parent', 'created_at', 'updated_at')
    list_per_page = 50
    inlines = [NotificationReadReceiptInline]

    @admin.display(description=_('Текст'))
    def message_preview(self, obj):
        return obj.message[:70] + '...' if len(obj.message) > 70 else obj.message
