import logging

from rest_framework import permissions

from core.exceptions import MaintenanceModeActive

logger = logging.getLogger(__name__)


def _is_authenticated(request):
    return bool(request.user and request.user.is_authenticated)


# Класс IsAdmin (requireAdmin) предоставляет доступ только аутентифицированным
# пользователям с ролью администратора.
class IsAdmin(permissions.BasePermission):
    message = 'Unauthorized. Admin access required.'

    def has_permission(self, request, view):
        return _is_authenticated(request) and request.user.is_admin


# Класс IsLecturerOrAdmin (requireLecturer): преподаватель или администратор.
class IsLecturerOrAdmin(permissions.BasePermission):
    message = 'Unauthorized. Only admins and lecturers can perform this action.'

    def has_permission(self, request, view):
        return _is_authenticated(request) and (request.user.is_lecturer or request.user.is_admin)


# Класс IsStudentOrAdmin (requireStudent): студент или администратор.
class IsStudentOrAdmin(permissions.BasePermission):
    message = 'Unauthorized. Only students and admins can perform this action.'

    def has_permission(self, request, view):
        return _is_authenticated(request) and (request.user.is_student or request.user.is_admin)


# Класс IsSelfOrAdmin (requireSelfOrAdmin) сравнивает идентификатор из URL
# (имя kwarg задается атрибутом представления self_lookup_url_kwarg, по умолчанию
# 'user_id') с user_id запрашивающего. Администратор проходит всегда.
# Проверка выполняется до поиска объекта, поэтому отказ не раскрывает, существует ли цель.
class IsSelfOrAdmin(permissions.BasePermission):
    message = 'Unauthorized. You can only view your own data or be an admin.'

    def has_permission(self, request, view):
        if not _is_authenticated(request):
            return False
        if request.user.is_admin:
            return True
        lookup_kwarg = getattr(view, 'self_lookup_url_kwarg', 'user_id')
        return view.kwargs.get(lookup_kwarg) == request.user.user_id


# Класс IsUploaderOrAdmin работает на уровне объекта: изменять материал может
# только загрузивший его пользователь или администратор.
class IsUploaderOrAdmin(permissions.BasePermission):
    message = 'Unauthorized. Only admins or the original uploader can modify this material.'

    def has_permission(self, request, view):
        return _is_authenticated(request)

    def has_object_permission(self, request, view, obj):
        if request.user.is_admin:
            return True
        return obj.uploaded_by_id is not None and obj.uploaded_by_id == request.user.pk


# Класс OrPermissions является композитным разрешением: доступ предоставляется,
# если хотя бы одно из переданных разрешений его дает.
class OrPermissions(permissions.BasePermission):
    def __init__(self, *perms, message=None):
        self.perms = [p() if isinstance(p, type) and issubclass(p, permissions.BasePermission) else p for p in perms]
        self.message = message or getattr(self.perms[0], 'message', None)

    def has_permission(self, request, view):
        for perm_instance in self.perms:
            if perm_instance.has_permission(request, view):
                return True
        return False

    def has_object_permission(self, request, view, obj):
        for perm_instance in self.perms:
            # Объектная проверка имеет смысл только для разрешений, прошедших has_permission.
            if perm_instance.has_permission(request, view):
                if perm_instance.has_object_permission(request, view, obj):
                    return True
        return False


# Класс MaintenanceModeGate закрывает API, пока в системных настройках включен
# режим обслуживания. Пользователи с ролью из maintenanceMode.allowedRoles проходят.
class MaintenanceModeGate(permissions.BasePermission):
    def has_permission(self, request, view):
        system_settings = getattr(request, 'system_settings', None)
        if system_settings is None:
            from core.models import SystemSettings
            system_settings = SystemSettings.load()

        maintenance = system_settings.maintenance_mode or {}
        if not maintenance.get('enabled'):
            return True
        if _is_authenticated(request) and request.user.role in maintenance.get('allowedRoles', []):
            return True
        logger.info(f"Request to {request.path} rejected: maintenance mode is enabled")
        raise MaintenanceModeActive(maintenance.get('message'))


# Миксин PolicyMixin реализует декларативную таблицу доступа для представления:
# permission_policy сопоставляет HTTP-метод со списком разрешений ('*' задает
# значение по умолчанию), permission_messages переопределяет текст отказа для метода.
# Во ViewSet ключом может быть и имя действия (например 'student'), оно проверяется
# раньше метода. Ко всем спискам добавляется MaintenanceModeGate, если представление
# не помечено как maintenance_exempt.
class PolicyMixin:
    permission_policy = {}
    permission_messages = {}
    maintenance_exempt = False

    def get_permissions(self):
        method = self.request.method
        if method == 'HEAD':
            method = 'GET'
        action = getattr(self, 'action', None)

        key = next(
            (k for k in (action, method, '*') if k is not None and k in self.permission_policy),
            None
        )
        policy = self.permission_policy[key] if key is not None else self.permission_classes

        perms = [p() if isinstance(p, type) else p for p in policy]
        message = self.permission_messages.get(action) or self.permission_messages.get(method)
        if message:
            for perm in perms:
                perm.message = message

        if not self.maintenance_exempt:
            perms.append(MaintenanceModeGate())
        return perms
