from django.contrib import admin

from .models import SystemSettings


# Настройки существуют в единственном экземпляре: создавать новые записи
# и удалять существующую через админку нельзя.
@admin.register(SystemSettings)
class SystemSettingsAdmin(admin.ModelAdmin):
    list_display = ('system_name', 'last_updated_by', 'updated_at')
    readonly_fields = ('last_updated_by', 'created_at', 'updated_at')

    def has_add_permission(self, request):
        return not SystemSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        obj.last_updated_by = getattr(request.user, 'user_id', '')
        super().save_model(request, obj, form, change)
