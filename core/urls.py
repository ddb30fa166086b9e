from django.urls import path

from . import views

# Системные настройки и административные операции (префикс /api/settings/).
urlpatterns = [
    path('', views.SystemSettingsView.as_view(), name='settings'),
    path('stats/', views.SystemStatsView.as_view(), name='settings-stats'),
    path('maintenance/', views.MaintenanceView.as_view(), name='settings-maintenance'),
    path('reset/', views.ResetDataView.as_view(), name='settings-reset'),
    path('export/', views.ExportDataView.as_view(), name='settings-export'),
]
