import copy
import logging

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)


# Значения по умолчанию для разделов системных настроек. Разделы хранятся в JSON
# в том виде, в каком их отдает API (ключи в camelCase).
def default_email_settings():
    return {
        'smtpHost': '',
        'smtpPort': 587,
        'smtpUser': '',
        'smtpPassword': '',
        'fromEmail': 'noreply@lms.local',
    }


def default_security_settings():
    return {
        'passwordMinLength': 8,
        'sessionTimeout': 24,
        'maxLoginAttempts': 5,
        'enableTwoFactor': False,
    }


def default_file_settings():
    return {
        'maxFileSize': 100,
        'allowedFileTypes': ['pdf', 'doc', 'docx', 'ppt', 'pptx', 'mp4', 'avi', 'mov'],
        'storageProvider': 'supabase',
    }


def default_notification_settings():
    return {
        'enableEmailNotifications': True,
        'enablePushNotifications': True,
        'notificationFrequency': 'immediate',
    }


def default_academic_settings():
    return {
        'currentAcademicYear': str(timezone.now().year),
        'semesterDuration': 6,
        'gradeScale': 'A-F',
        'passingGrade': 50,
    }


def default_maintenance_mode():
    return {
        'enabled': False,
        'message': 'System is under maintenance. Please try again later.',
        'allowedRoles': ['admin'],
    }


def default_backup_settings():
    return {
        'autoBackup': True,
        'backupFrequency': 'weekly',
        'retentionDays': 30,
    }


def default_theme_settings():
    return {
        'primaryColor': '#667eea',
        'secondaryColor': '#764ba2',
        'darkMode': False,
        'customCSS': '',
    }


# Модель SystemSettings хранит единственную запись (pk=1) с системной конфигурацией.
# Запись создается при первом чтении через load(); middleware прикрепляет ее к запросу
# как request.system_settings, откуда ее читают регистрация, материалы, оценки и
# проверка режима обслуживания.
class SystemSettings(models.Model):
    SINGLETON_PK = 1

    SECTION_FIELDS = {
        'emailSettings': 'email_settings',
        'securitySettings': 'security_settings',
        'fileSettings': 'file_settings',
        'notificationSettings': 'notification_settings',
        'academicSettings': 'academic_settings',
        'maintenanceMode': 'maintenance_mode',
        'backupSettings': 'backup_settings',
        'themeSettings': 'theme_settings',
    }

    system_name = models.CharField(_('название системы'), max_length=255, default='Learning Management System')
    system_logo = models.CharField(_('логотип'), max_length=500, blank=True, default='')
    system_description = models.TextField(_('описание'), blank=True, default='Advanced Learning Management System')

    email_settings = models.JSONField(_('настройки почты'), default=default_email_settings)
    security_settings = models.JSONField(_('настройки безопасности'), default=default_security_settings)
    file_settings = models.JSONField(_('настройки файлов'), default=default_file_settings)
    notification_settings = models.JSONField(_('настройки уведомлений'), default=default_notification_settings)
    academic_settings = models.JSONField(_('учебные настройки'), default=default_academic_settings)
    maintenance_mode = models.JSONField(_('режим обслуживания'), default=default_maintenance_mode)
    backup_settings = models.JSONField(_('резервное копирование'), default=default_backup_settings)
    theme_settings = models.JSONField(_('оформление'), default=default_theme_settings)

    last_updated_by = models.CharField(_('кем обновлено'), max_length=50, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('системные настройки')
        verbose_name_plural = _('системные настройки')

    def __str__(self):
        return self.system_name

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    # Идемпотентное чтение: при отсутствии записи создается запись по умолчанию.
    @classmethod
    def load(cls, updated_by=''):
        instance, created = cls.objects.get_or_create(
            pk=cls.SINGLETON_PK,
            defaults={'last_updated_by': updated_by}
        )
        if created:
            logger.info("Default system settings created")
        return instance

    # Сливает переданные значения раздела с текущими, сохраняя незатронутые ключи.
    def merge_section(self, api_name, values):
        field_name = self.SECTION_FIELDS[api_name]
        merged = copy.deepcopy(getattr(self, field_name) or {})
        merged.update(values)
        setattr(self, field_name, merged)

    # Удобные accessors для потребителей настроек.
    @property
    def password_min_length(self):
        return int(self.security_settings.get('passwordMinLength', 8))

    @property
    def max_file_size_bytes(self):
        return int(self.file_settings.get('maxFileSize', 100)) * 1024 * 1024

    @property
    def current_academic_year(self):
        return str(self.academic_settings.get('currentAcademicYear') or timezone.now().year)

    @property
    def passing_percentage(self):
        return float(self.academic_settings.get('passingGrade', 50))
