from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import views

# Маршруты приложения 'users' (префикс /api/users/ задается в корневом urls.py).
# Статические сегменты объявлены раньше маршрута '<user_id>/', который иначе их перехватит.
urlpatterns = [
    path('', views.UserListCreateView.as_view(), name='user-list'),

    # Аутентификация: вход по email и паролю, обновление access-токена
    path('login/', views.LoginView.as_view(), name='login'),
    path('login/refresh/', TokenRefreshView.as_view(), name='token-refresh'),

    path('admins/', views.RoleListView.as_view(role='admin'), name='user-admins'),
    path('lecturers/', views.RoleListView.as_view(role='lecturer'), name='user-lecturers'),
    path('students/', views.RoleListView.as_view(role='student'), name='user-students'),
    path('search/', views.UserSearchView.as_view(), name='user-search'),
    path('stats/', views.UserStatsView.as_view(), name='user-stats'),
    path('update/', views.UserUpdateView.as_view(), name='user-update'),
    path('admin/delete/', views.DeleteUserByEmailView.as_view(), name='user-delete-by-email'),
    path('department/<str:department>/', views.UsersByDepartmentView.as_view(), name='users-by-department'),
    path(
        'role/<str:role>/department/<str:department>/',
        views.UsersByRoleAndDepartmentView.as_view(),
        name='users-by-role-department'
    ),

    path('<str:user_id>/', views.UserDetailView.as_view(), name='user-detail'),
]
