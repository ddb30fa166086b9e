from django.utils.functional import SimpleLazyObject

from .models import SystemSettings


# Прикрепляет системные настройки к каждому запросу как request.system_settings.
# Загрузка ленивая: запрос к БД выполняется только при первом обращении.
class SystemSettingsMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.system_settings = SimpleLazyObject(SystemSettings.load)
        return self.get_response(request)
