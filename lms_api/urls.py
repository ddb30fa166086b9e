from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

from stats import urls as stats_urls

urlpatterns = [
    path('admin/', admin.site.urls),

    path('api/users/', include('users.urls')),
    # Кафедры, предметы, уроки, части уроков, материалы и оценки
    path('api/', include('edu_core.urls')),
    path('api/news/', include('news.urls')),
    path('api/notifications/', include('notifications.urls')),
    path('api/settings/', include('core.urls')),

    # Панели студента и преподавателя
    path('api/students/', include(stats_urls.student_urlpatterns)),
    path('api/lecturers/', include(stats_urls.lecturer_urlpatterns)),

    # Эндпоинты для Swagger/OpenAPI документации
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
