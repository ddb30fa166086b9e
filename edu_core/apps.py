from django.apps import AppConfig


class EduCoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'edu_core'
    verbose_name = "Учебный процесс"
