from django.urls import include, path
from rest_framework.routers import SimpleRouter

from . import views

# Все маршруты уведомлений являются действиями одного ViewSet, зарегистрированного
# с пустым префиксом: /api/notifications/inbox/, /api/notifications/reply/<id>/ и т.д.
router = SimpleRouter()
router.register(r'', views.NotificationViewSet, basename='notification')

urlpatterns = [
    path('', include(router.urls)),
]
