from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import User


# Класс UserAdmin настраивает отображение модели User в админ-панели.
# Вход выполняется по email, поэтому стандартные наборы полей, завязанные
# на username, заменены собственными.
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('user_id', 'email', 'first_name', 'last_name', 'role', 'department', 'is_active')
    list_filter = ('role', 'department', 'is_active', 'is_staff')
    search_fields = ('user_id', 'email', 'first_name', 'last_name')
    ordering = ('last_name', 'first_name')

    fieldsets = (
        (None, {'fields': ('user_id', 'email', 'password')}),
        (_('Personal info'), {'fields': ('first_name', 'last_name', 'department')}),
        (_('Role & Permissions'), {'fields': ('role', 'is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        (_('Important dates'), {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('user_id', 'email', 'first_name', 'last_name', 'role', 'department', 'password1', 'password2'),
        }),
    )
